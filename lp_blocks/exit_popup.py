"""Exit-intent popup fragment (scoped CSS + markup + trigger script)."""
import html
import json
import time
from typing import Any, Dict, Optional, Union

from .models import ExitPopupConfig, PopupContent, coerce_model


def _base36(number: int) -> str:
    chars = "0123456789abcdefghijklmnopqrstuvwxyz"
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = chars[rem] + out
    return out or "0"


def new_popup_id() -> str:
    return "exit-popup-" + _base36(int(time.time() * 1000))


def _esc(value: str) -> str:
    return html.escape(value or "", quote=True)


def render_exit_popup(
    config: Union[ExitPopupConfig, Dict[str, Any], None],
    popup_id: Optional[str] = None,
) -> str:
    """Popup HTML for ``config``, or "" when the popup is disabled."""
    config = coerce_model(ExitPopupConfig, config)
    if not config.enabled:
        return ""

    popup_id = popup_id or new_popup_id()
    if config.template == "custom" and config.custom_html:
        body = config.custom_html
    else:
        body = _template_html(config.template, config.content)

    return (
        _popup_css(popup_id, config)
        + _popup_markup(popup_id, body)
        + _trigger_script(popup_id, config)
    )


def _template_html(template: str, content: PopupContent) -> str:
    title = _esc(content.title)
    body = _esc(content.body)
    cta = (
        f'<a href="{_esc(content.cta_link or "#")}" class="__CTA__">{_esc(content.cta_text)}</a>'
        f'<button class="__DECLINE__">{_esc(content.decline_text)}</button>'
    )
    image = f'<img src="{_esc(content.image_url)}" alt="">' if content.image_url else ""

    if template == "image":
        return f"{image}<h3>{title}</h3><p>{body}</p>{cta}"
    if template == "coupon":
        coupon = (
            '<div style="background:#fff3cd;border:2px dashed #ffc107;border-radius:8px;'
            'padding:16px;margin-bottom:16px"><span style="font-size:28px;font-weight:900;'
            'color:#d63384">SPECIAL OFFER</span></div>'
        )
        return f"{coupon}<h3>{title}</h3><p>{body}</p>{cta}"
    return f"<h3>{title}</h3><p>{body}</p>{image}{cta}"


def _popup_css(pid: str, config: ExitPopupConfig) -> str:
    s = config.style
    return f"""
<style>
#{pid}-overlay {{
  display: none;
  position: fixed;
  inset: 0;
  background: {s.overlay_color};
  z-index: 99999;
  justify-content: center;
  align-items: center;
  animation: {pid}-fadeOverlay 0.3s ease;
}}
#{pid}-overlay.active {{ display: flex; }}
#{pid}-box {{
  background: {s.bg_color};
  border-radius: {s.border_radius}px;
  max-width: 480px;
  width: 90%;
  padding: 32px 28px;
  text-align: center;
  position: relative;
  box-shadow: 0 20px 60px rgba(0,0,0,0.3);
  animation: {pid}-{s.animation} 0.4s ease;
}}
#{pid}-box h3 {{ margin: 0 0 12px; font-size: 22px; font-weight: 700; color: #1a1a1a; line-height: 1.4; }}
#{pid}-box p {{ margin: 0 0 20px; font-size: 15px; color: #555; line-height: 1.6; }}
#{pid}-box img {{ max-width: 100%; border-radius: 8px; margin-bottom: 16px; }}
#{pid}-cta {{
  display: inline-block;
  padding: 14px 40px;
  background: {s.button_color};
  color: #fff;
  font-size: 16px;
  font-weight: 700;
  border-radius: 8px;
  text-decoration: none;
  border: none;
  cursor: pointer;
}}
#{pid}-cta:hover {{ opacity: 0.85; }}
#{pid}-box .__DECLINE__ {{
  display: block;
  margin: 14px auto 0;
  font-size: 13px;
  color: #999;
  cursor: pointer;
  background: none;
  border: none;
  text-decoration: underline;
}}
#{pid}-close {{
  position: absolute;
  top: 10px;
  right: 14px;
  background: none;
  border: none;
  font-size: 24px;
  color: #aaa;
  cursor: pointer;
  line-height: 1;
}}
@keyframes {pid}-fadeIn {{ from {{ opacity: 0; transform: translateY(20px); }} to {{ opacity: 1; transform: translateY(0); }} }}
@keyframes {pid}-slideUp {{ from {{ opacity: 0; transform: translateY(60px); }} to {{ opacity: 1; transform: translateY(0); }} }}
@keyframes {pid}-scaleIn {{ from {{ opacity: 0; transform: scale(0.8); }} to {{ opacity: 1; transform: scale(1); }} }}
@keyframes {pid}-fadeOverlay {{ from {{ opacity: 0; }} to {{ opacity: 1; }} }}
{config.custom_css}
</style>"""


def _popup_markup(pid: str, body: str) -> str:
    return f"""
<div id="{pid}-overlay">
  <div id="{pid}-box">
    <button id="{pid}-close">&times;</button>
    {body}
  </div>
</div>"""


def _trigger_script(pid: str, config: ExitPopupConfig) -> str:
    triggers = {
        "mouseout": """
  document.addEventListener("mouseout", function(e) {
    if (!e.relatedTarget && e.clientY < 10) showPopup();
  });""",
        "back_button": """
  history.pushState(null, "", location.href);
  window.addEventListener("popstate", function() {
    history.pushState(null, "", location.href);
    showPopup();
  });""",
        "idle_timer": """
  setTimeout(showPopup, minDelay);""",
    }
    scroll_up = """
  var lastScrollY = window.scrollY;
  var scrollUpCount = 0;
  window.addEventListener("scroll", function() {
    if (window.scrollY < lastScrollY - 50) {
      scrollUpCount++;
      if (scrollUpCount >= 2) showPopup();
    } else {
      scrollUpCount = 0;
    }
    lastScrollY = window.scrollY;
  }, { passive: true });""" if config.mobile_scroll_up else ""

    pid_js = json.dumps(pid)
    trigger_js = triggers.get(config.trigger, "")
    show_once_js = "true" if config.show_once else "false"
    return f"""
<script>
(function(){{
  var pid = {pid_js};
  var shown = false;
  var startTime = Date.now();
  var minDelay = {config.min_delay_sec * 1000};
  var showOnce = {show_once_js};
  var storageKey = pid + "-shown";

  if (showOnce && localStorage.getItem(storageKey)) return;

  var overlay = document.getElementById(pid + "-overlay");

  function showPopup() {{
    if (shown) return;
    if (Date.now() - startTime < minDelay) return;
    shown = true;
    if (overlay) overlay.classList.add("active");
    if (showOnce) localStorage.setItem(storageKey, "1");
  }}

  function hidePopup() {{
    if (overlay) overlay.classList.remove("active");
  }}

  var closeBtn = document.getElementById(pid + "-close");
  if (closeBtn) closeBtn.addEventListener("click", hidePopup);
  if (overlay) overlay.addEventListener("click", function(e) {{
    if (e.target === overlay) hidePopup();
  }});
  document.querySelectorAll("#" + pid + "-box .__DECLINE__").forEach(function(d) {{
    d.addEventListener("click", hidePopup);
  }});

  var cta = document.querySelector("#" + pid + "-box .__CTA__, #" + pid + "-box a[href]");
  if (cta) {{
    cta.id = pid + "-cta";
    cta.removeAttribute("class");
  }}
{trigger_js}
{scroll_up}
}})();
</script>"""
