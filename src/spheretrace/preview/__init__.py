"""Preview module for output and visualization.

Components:
    display: Matplotlib-based preview display
    export: PPM/PNG image export utilities

Example:
    >>> from spheretrace.preview import save_image, show_preview
    >>> image = renderer.get_image_numpy()
    >>> save_image(image, "output.png")
    >>> show_preview(image, sample_count=renderer.sample_count)
"""

from spheretrace.preview.display import show_comparison, show_preview
from spheretrace.preview.export import (
    compute_rmse,
    encode_ppm,
    image_to_uint8,
    quantize,
    save_image,
    save_png,
    save_ppm,
    write_ppm,
)

__all__ = [
    # Display functions
    "show_preview",
    "show_comparison",
    # Export functions
    "quantize",
    "image_to_uint8",
    "encode_ppm",
    "write_ppm",
    "save_ppm",
    "save_png",
    "save_image",
    "compute_rmse",
]
