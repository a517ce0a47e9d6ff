"""Bounded-fit thumbnail computation."""

from typing import Dict, Tuple

from PIL import Image

from .exceptions import ResizeError
from .models import SizeTarget

RESAMPLING: Dict[str, Image.Resampling] = {
    "lanczos": Image.Resampling.LANCZOS,
    "bicubic": Image.Resampling.BICUBIC,
    "bilinear": Image.Resampling.BILINEAR,
}


def fit_within(src_size: Tuple[int, int], size: SizeTarget) -> Tuple[int, int]:
    """
    Largest (width, height) inside ``size`` with the aspect ratio of ``src_size``.

    scale = min(max_width / width, max_height / height). Sources that already
    fit are returned unchanged; nothing is upscaled.
    """
    width, height = src_size
    if width <= 0 or height <= 0:
        raise ResizeError(f"Invalid source dimensions {width}x{height}")

    if width <= size.width and height <= size.height:
        return width, height

    # Compare ratios with integer arithmetic to pick the limiting side
    if width * size.height >= height * size.width:
        new_width = size.width
        new_height = max(1, min(size.height, round(height * size.width / width)))
    else:
        new_height = size.height
        new_width = max(1, min(size.width, round(width * size.height / height)))
    return new_width, new_height


def make_thumbnail(
    src: Image.Image, size: SizeTarget, resample: str = "lanczos"
) -> Image.Image:
    """
    Return a new thumbnail image of ``src`` bounded by ``size``.

    ``src`` is never modified, so it can be shared by concurrent size-workers.

    Args:
        src: Decoded source image
        size: Bounding box
        resample: One of "lanczos", "bicubic", "bilinear"

    Returns:
        New PIL Image
    """
    try:
        resampling = RESAMPLING[resample]
    except KeyError:
        raise ResizeError(f"Unknown resample filter: {resample}") from None

    target = fit_within(src.size, size)
    if target == src.size:
        return src.copy()
    return src.resize(target, resample=resampling)
