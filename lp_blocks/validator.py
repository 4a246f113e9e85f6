"""
SB HTML validation.

Errors make a fragment non-compliant; warnings are advisory. Repeated
sb-part id/class pairs are normal in vendor markup (variant siblings) and
are only counted in ``stats``.
"""
import re
from collections import Counter

from .dom import get_classes, has_class, parse_fragment
from .ids import PART_ID_PREFIX, part_class_of
from .models import ValidationReport

WRAPPER_TAG_RE = re.compile(r"<(html|body)[\s>/]", re.I)

LAZYLOAD_CLASS = "lazyload"


def validate_sb_html(html: str) -> ValidationReport:
    """Check builder output against the SB fragment rules. Pure; same input, same report."""
    errors = []
    warnings = []

    if WRAPPER_TAG_RE.search(html or ""):
        errors.append("<html> or <body> tag found - SB fragments must not have these")

    soup = parse_fragment(html)

    images = soup.find_all("img")
    for img in images:
        label = img.get("src") or img.get("data-src") or ""
        if not has_class(img, LAZYLOAD_CLASS):
            warnings.append(f"img without lazyload class: {label}")
        if not img.get("data-src"):
            warnings.append(f"img without data-src: {label}")

    videos = soup.find_all("video")
    for video in videos:
        if not has_class(video, LAZYLOAD_CLASS):
            warnings.append("video without lazyload class")
        for source in video.find_all("source"):
            if not source.get("data-src"):
                warnings.append("video source without data-src")
                break

    pairs: Counter = Counter()
    for part in soup.find_all(id=lambda value: bool(value) and value.startswith(PART_ID_PREFIX)):
        pairs[(part["id"], part_class_of(get_classes(part)))] += 1

    stats = {
        "images": len(images),
        "videos": len(videos),
        "widget_parts": sum(pairs.values()),
        "repeated_part_pairs": sum(1 for count in pairs.values() if count > 1),
    }

    return ValidationReport(valid=not errors, errors=errors, warnings=warnings, stats=stats)
