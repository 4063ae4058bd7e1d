"""Image export utilities for rendered images.

This module converts final (gamma-corrected) images to 8-bit channels and
writes them to files or streams.

Supported formats:
    - PPM (plain ASCII "P3", written directly)
    - PNG and the other formats Pillow can write, chosen by file extension

Channel quantization maps a value c in [0, 1] to int(256 * clamp(c, 0, 0.999)),
so 0 maps to 0, 1 maps to 255, and each of the 256 levels covers an equal
share of [0, 1).

Example:
    >>> from spheretrace.preview.export import save_image
    >>> from spheretrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(config)
    >>> renderer.render()
    >>> save_image(renderer.get_image_numpy(), "output.png")
"""

import logging
from pathlib import Path
from typing import TextIO

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

logger = logging.getLogger(__name__)

# Upper clamp before scaling so that 1.0 lands in the top bucket
QUANTIZE_CLAMP_MAX = 0.999

PPM_SUFFIXES = (".ppm",)


def quantize(value: float) -> int:
    """Quantize one channel value to an integer in [0, 255]."""
    return int(256 * min(max(value, 0.0), QUANTIZE_CLAMP_MAX))


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a final float image to uint8 for display/export.

    Args:
        image: Image array of shape (H, W, 3), values nominally in [0, 1].

    Returns:
        8-bit image array of shape (H, W, 3).
    """
    clamped = np.clip(np.nan_to_num(image, nan=0.0), 0.0, QUANTIZE_CLAMP_MAX)
    return (256.0 * clamped).astype(np.uint8)


def _check_image_shape(image: npt.NDArray[np.generic]) -> None:
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")


def encode_ppm(image: npt.NDArray[np.floating]) -> str:
    """Encode a final float image as a plain (P3) PPM document.

    The header is "P3", the width and height, and the maximum value 255,
    each on its own line, followed by one "r g b" line per pixel, rows top
    to bottom.
    """
    _check_image_shape(image)
    height, width, _ = image.shape
    pixels = image_to_uint8(image).reshape(-1, 3)

    lines = ["P3", f"{width} {height}", "255"]
    lines.extend(f"{r} {g} {b}" for r, g, b in pixels.tolist())
    return "\n".join(lines) + "\n"


def write_ppm(image: npt.NDArray[np.floating], stream: TextIO) -> None:
    """Write a final float image to a text stream as a P3 PPM."""
    stream.write(encode_ppm(image))


def save_ppm(image: npt.NDArray[np.floating], filepath: str | Path) -> None:
    """Save a final float image as a P3 PPM file."""
    with open(filepath, "w", encoding="ascii", newline="\n") as f:
        write_ppm(image, f)


def save_png(image: npt.NDArray[np.floating], filepath: str | Path) -> None:
    """Save a final float image with Pillow (PNG or any format it infers).

    Args:
        image: Image array of shape (H, W, 3) with values in [0, 1].
        filepath: Output file path; the extension selects the format.
    """
    _check_image_shape(image)
    pil_image = PILImage.fromarray(image_to_uint8(image))
    pil_image.save(filepath)


def save_image(image: npt.NDArray[np.floating], filepath: str | Path) -> None:
    """Save a final float image, choosing the encoder by file extension.

    ".ppm" files are written as plain P3 PPM; everything else goes through
    Pillow.

    Raises:
        OSError: If the file cannot be written.
        ValueError: If the image has the wrong shape or Pillow does not know
            the extension.
    """
    path = Path(filepath)
    if path.suffix.lower() in PPM_SUFFIXES:
        save_ppm(image, path)
    else:
        save_png(image, path)
    logger.info("Wrote %dx%d image to %s", image.shape[1], image.shape[0], path)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Args:
        image_a: First image array.
        image_b: Second image array (must have same shape as image_a).

    Returns:
        RMSE value (lower is more similar).

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(f"Image shapes must match: {image_a.shape} vs {image_b.shape}")

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
