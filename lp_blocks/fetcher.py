"""
Static page fetcher.

Downloads a page and its media with plain HTTP GETs. There is no browser
rendering and no retry: a failed asset is logged and skipped.
"""
import hashlib
import logging
import os
from typing import Dict, Iterable, List, Optional
from urllib.parse import urlparse

import requests

from .dom import parse_page, resolve_url
from .models import AssetCatalogEntry, FetchResult

log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Linux; Android 13; Pixel 7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Mobile Safari/537.36"
)
USER_AGENT = os.environ.get("LP_BLOCKS_USER_AGENT", DEFAULT_USER_AGENT)
PAGE_TIMEOUT = int(os.environ.get("LP_BLOCKS_FETCH_TIMEOUT", "60"))
ASSET_TIMEOUT = 15

# Article body container used by SB pages
ARTICLE_BODY_SELECTOR = ".article-body"

VIDEO_EXTS = {".mp4", ".webm", ".mov"}
IMAGE_EXTS = {".webp", ".avif", ".jpg", ".jpeg", ".png", ".svg"}


def url_to_filename(url: str) -> str:
    """Stable local filename: md5 prefix of the URL plus its extension."""
    ext = os.path.splitext(urlparse(url).path)[1] or ".bin"
    digest = hashlib.md5(url.encode("utf-8")).hexdigest()[:8]
    return f"{digest}{ext}"


def guess_media_type(url: str) -> str:
    ext = os.path.splitext(urlparse(url).path)[1].lower()
    if ext in VIDEO_EXTS:
        return "video"
    if ext == ".gif":
        return "gif"
    if ext in IMAGE_EXTS:
        return "image"
    return "unknown"


def extract_content_html(page_html: str) -> str:
    """Inner HTML of the article body, falling back to <body>."""
    soup = parse_page(page_html)
    container = soup.select_one(ARTICLE_BODY_SELECTOR) or soup.body
    if container is None:
        return page_html
    return "".join(str(child) for child in container.contents)


def collect_media_urls(page_html: str, base_url: str) -> List[str]:
    """Absolute http(s) URLs of every image, source and video in the page, first-seen order."""
    soup = parse_page(page_html)
    candidates = []
    for img in soup.find_all("img"):
        candidates.extend([img.get("data-src"), img.get("src")])
    for source in soup.find_all("source"):
        candidates.extend([source.get("data-srcset"), source.get("data-src"), source.get("srcset")])
    for video in soup.find_all("video"):
        candidates.append(video.get("src"))

    urls: List[str] = []
    for candidate in candidates:
        if not candidate or candidate.startswith("data:"):
            continue
        absolute = resolve_url(base_url, candidate.strip())
        if absolute.startswith("http") and absolute not in urls:
            urls.append(absolute)
    return urls


def download_assets(
    urls: Iterable[str],
    asset_dir: str,
    session: Optional[requests.Session] = None,
) -> FetchResult:
    """Download each URL once into ``asset_dir``; failures are recorded, not raised."""
    session = session or requests.Session()
    os.makedirs(asset_dir, exist_ok=True)
    result = FetchResult(url="", html="")

    for url in urls:
        filename = url_to_filename(url)
        path = os.path.join(asset_dir, filename)
        try:
            response = session.get(url, headers={"User-Agent": USER_AGENT}, timeout=ASSET_TIMEOUT)
        except requests.RequestException as exc:
            log.warning("asset download failed: %s (%s)", url, exc)
            result.failed.append(url)
            continue
        if not response.ok:
            log.warning("asset download failed: %s (HTTP %s)", url, response.status_code)
            result.failed.append(url)
            continue

        with open(path, "wb") as f:
            f.write(response.content)
        result.assets.append(AssetCatalogEntry(
            original_url=url,
            local_file=filename,
            local_path=path,
            size=len(response.content),
            type=guess_media_type(url),
        ))

    log.info("downloaded %d assets, %d failed", len(result.assets), len(result.failed))
    return result


def fetch_page(
    url: str,
    asset_dir: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> FetchResult:
    """
    Fetch ``url`` and, when ``asset_dir`` is given, its media.

    The returned html is the article body (or body) inner HTML, ready for
    ``parse_html``. HTTP errors on the page itself propagate.
    """
    session = session or requests.Session()
    response = session.get(url, headers={"User-Agent": USER_AGENT}, timeout=PAGE_TIMEOUT)
    response.raise_for_status()
    page_html = response.text

    result = FetchResult(url=url, html=extract_content_html(page_html))
    if asset_dir:
        downloaded = download_assets(collect_media_urls(page_html, url), asset_dir, session)
        result.assets = downloaded.assets
        result.failed = downloaded.failed
    return result


def build_image_map(catalog: Iterable[AssetCatalogEntry], url_prefix: str = "") -> Dict[str, str]:
    """Map each original URL to ``url_prefix`` + local filename (or the local path)."""
    image_map = {}
    for entry in catalog:
        if url_prefix:
            image_map[entry.original_url] = url_prefix.rstrip("/") + "/" + entry.local_file
        else:
            image_map[entry.original_url] = entry.local_path
    return image_map
