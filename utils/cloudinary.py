"""
Cloudinary URL helpers.

Photo references in reports are either full delivery URLs
(https://res.cloudinary.com/<cloud>/<resource_type>/upload/.../<public_id>.<ext>)
or bare public ids such as "pelayanan_desa/abc123". These helpers resolve both
forms and build the transformation URLs used for pre-watermarked variants.
"""
import re
from typing import List, Optional, Tuple
from urllib.parse import unquote, urlparse

import cloudinary

RESOURCE_TYPES = ("image", "video", "raw")

_VERSION_RE = re.compile(r"^v\d+$")
_EXT_RE = re.compile(r"\.[A-Za-z0-9]{2,5}$")
# parameter keys that can open a transformation segment such as "w_600,c_fit"
_TRANSFORM_KEYS = {
    "a", "ac", "af", "ar", "b", "bo", "br", "c", "co", "cs", "d", "dl", "dn", "dpr", "du", "e",
    "eo", "f", "fl", "fn", "fps", "g", "h", "if", "ki", "l", "o", "p", "pg", "q", "r", "so",
    "sp", "t", "u", "vc", "vs", "w", "x", "y", "z",
}


def is_cloudinary_url(url: str) -> bool:
    if not url:
        return False
    host = (urlparse(url).hostname or "").lower()
    return host == "res.cloudinary.com" or host.endswith(".cloudinary.com")


def is_remote_url(ref: str) -> bool:
    return (ref or "").strip().lower().startswith(("http://", "https://"))


def _is_transformation(segment: str) -> bool:
    for part in segment.split(","):
        key, sep, _ = part.partition("_")
        if not sep or key not in _TRANSFORM_KEYS:
            return False
    return True


def asset_from_url(url: str) -> Optional[Tuple[str, str]]:
    """(resource_type, public_id) of a Cloudinary delivery URL.

    Image and video public ids carry no extension; raw ones keep it, the way
    Cloudinary stores them.
    """
    if not is_cloudinary_url(url):
        return None
    parts = [unquote(p) for p in urlparse(url).path.split("/") if p]
    if len(parts) < 4 or parts[1] not in RESOURCE_TYPES or parts[2] != "upload":
        return None
    resource_type, rest = parts[1], parts[3:]

    version_at = next((i for i, p in enumerate(rest) if _VERSION_RE.match(p)), None)
    if version_at is not None and all(_is_transformation(p) for p in rest[:version_at]):
        rest = rest[version_at + 1:]
    else:
        while len(rest) > 1 and _is_transformation(rest[0]):
            rest = rest[1:]
    if not rest:
        return None
    if resource_type != "raw" and "." in rest[-1]:
        rest[-1] = rest[-1].rsplit(".", 1)[0]
    public_id = "/".join(rest)
    return (resource_type, public_id) if public_id else None


def public_id_from_url(url: str) -> Optional[str]:
    asset = asset_from_url(url)
    return asset[1] if asset else None


def cloud_name_from_url(url: str) -> Optional[str]:
    if not is_cloudinary_url(url):
        return None
    parts = [p for p in urlparse(url).path.split("/") if p]
    return parts[0] if parts else None


def delivery_url(cloud_name: str, public_id: str, transformation: Optional[List[dict]] = None,
                 base: str = "https://res.cloudinary.com", fmt: str = "jpg") -> str:
    path = public_id.strip("/")
    image = cloudinary.CloudinaryImage(path, format=fmt if fmt and not _EXT_RE.search(path) else None)
    options = {
        "cloud_name": cloud_name,
        "secure": True,
        "force_version": False,
        "secure_distribution": urlparse(base).netloc or None,
    }
    if transformation:
        options["transformation"] = transformation
    return image.build_url(**options)


def watermark_transformation(title: str, lines: List[str], logo_public_id: str = "",
                             font_size: int = 28, quality: int = 90) -> List[dict]:
    """Chained layers drawing the caption band, the title and the logo."""
    steps = [
        {
            "overlay": {"font_family": "Arial", "font_size": font_size, "text": "\n".join(lines)},
            "color": "white",
            "background": "#000000bf",
            "gravity": "south_west",
        },
        {
            "overlay": {"font_family": "Arial", "font_size": font_size, "font_weight": "bold", "text": title},
            "color": "#ffd600",
            "gravity": "south_west",
            "x": 20,
            "y": (len(lines) + 1) * int(font_size * 1.5),
        },
    ]
    if logo_public_id:
        steps.append({
            "overlay": {"public_id": logo_public_id.strip("/")},
            "width": 0.15,
            "flags": "relative",
            "gravity": "south_east",
            "x": 20,
            "y": 20,
        })
    steps.append({"quality": quality})
    return steps
