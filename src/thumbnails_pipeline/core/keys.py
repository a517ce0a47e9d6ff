"""Output key derivation and the size marker used to recognise thumbnails."""

import posixpath
import re
from typing import Optional

from .models import SizeTarget

# Any "<digits>x<digits>" substring marks a key as pipeline output.
# An original upload named e.g. "banner_1920x1080.jpg" is skipped too.
SIZE_MARKER_PATTERN = re.compile(r"(\d+)x(\d+)")


def derive_output_key(key: str, size: SizeTarget) -> str:
    """
    Compute the key a thumbnail of ``key`` is written to.

    Only the trailing extension is replaced, so "photos/a.jpg" at 200x200
    becomes "photos/a_200x200.jpg". Keys without an extension get the marker
    appended.
    """
    root, ext = posixpath.splitext(key)
    return f"{root}_{size.width}x{size.height}{ext}"


def matches_size_marker(key: str) -> bool:
    """Return True if ``key`` looks like something derive_output_key produced."""
    return SIZE_MARKER_PATTERN.search(key) is not None


def parse_size_marker(key: str) -> Optional[SizeTarget]:
    """Parse the last size marker in ``key`` back into a SizeTarget."""
    matches = SIZE_MARKER_PATTERN.findall(key)
    if not matches:
        return None
    width, height = (int(part) for part in matches[-1])
    if width <= 0 or height <= 0:
        return None
    return SizeTarget(width=width, height=height)
