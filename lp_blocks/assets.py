"""
Pull image/video descriptors out of a block's subtree.

Lazy-load attributes (``data-src`` / ``data-srcset``) win over eager ones
(``src`` / ``srcset``) so pages that still load eagerly fall back correctly.
"""
from typing import List, Optional

from bs4 import Tag

from .dom import find_all_including_self, parse_int
from .models import AssetRef, AssetVariant


def lazy_src(elem: Tag) -> str:
    """Current source of an <img>/<video>/<source>: data-src, then src."""
    if not isinstance(elem, Tag):
        return ""
    return elem.get("data-src") or elem.get("src") or ""


def lazy_srcset(elem: Tag) -> str:
    """Current srcset of a <source>: data-srcset, then srcset."""
    if not isinstance(elem, Tag):
        return ""
    return elem.get("data-srcset") or elem.get("srcset") or ""


def is_inside_picture(elem: Tag) -> bool:
    return elem.find_parent("picture") is not None


def extract_picture_asset(picture: Tag) -> AssetRef:
    """Descriptor for one <picture>: the <img> source plus every alternate format."""
    img = picture.find("img")
    variants = []
    for source in picture.find_all("source"):
        src = lazy_srcset(source)
        if src:
            variants.append(AssetVariant(type=source.get("type", ""), src=src))
    return AssetRef(
        kind="image",
        primary_src=lazy_src(img),
        variants=variants,
        width=parse_int(img.get("width")) if img else 0,
        height=parse_int(img.get("height")) if img else 0,
    )


def extract_image_assets(elem: Tag) -> List[AssetRef]:
    """Image descriptors in document order (pictures, then bare imgs where they appear)."""
    assets = []
    for media in find_all_including_self(elem, ["picture", "img"]):
        if media.name == "picture":
            assets.append(extract_picture_asset(media))
        elif not is_inside_picture(media):
            assets.append(AssetRef(
                kind="image",
                primary_src=lazy_src(media),
                width=parse_int(media.get("width")),
                height=parse_int(media.get("height")),
            ))
    return assets


def first_video(elem: Tag) -> Optional[Tag]:
    if not isinstance(elem, Tag):
        return None
    if elem.name == "video":
        return elem
    return elem.find("video")


def video_source(video: Tag) -> str:
    """First child <source>'s lazy src, else the video's own src."""
    source = video.find("source")
    return lazy_src(source) or video.get("src", "") or ""


def extract_video_asset(elem: Tag) -> Optional[AssetRef]:
    video = first_video(elem)
    if video is None:
        return None
    return AssetRef(
        kind="video",
        primary_src=video_source(video),
        width=parse_int(video.get("width")),
        height=parse_int(video.get("height")),
    )
