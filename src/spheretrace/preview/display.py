"""Matplotlib-based preview display for rendered images.

Features:
    - Preview window for a finished render
    - Sample count display
    - Side-by-side comparison of two renders

Matplotlib is an optional dependency (the "preview" extra) and is imported
only when a window is opened.

Example:
    >>> from spheretrace.preview.display import show_preview
    >>> from spheretrace.core.progressive import ProgressiveRenderer
    >>>
    >>> renderer = ProgressiveRenderer(config)
    >>> renderer.render()
    >>> show_preview(renderer.get_image_numpy(), sample_count=renderer.sample_count)
"""

import numpy as np
import numpy.typing as npt

from spheretrace.preview.export import compute_rmse


def show_preview(
    image: npt.NDArray[np.float32],
    *,
    sample_count: int | None = None,
    title: str | None = None,
    figsize: tuple[float, float] = (10, 6),
    block: bool = True,
) -> None:
    """Display a final (gamma-corrected) image in a Matplotlib figure.

    Args:
        image: Image array of shape (H, W, 3) with values in [0, 1].
        sample_count: Samples per pixel, shown in the default title.
        title: Custom title (default shows sample count).
        figsize: Figure size in inches (width, height).
        block: Whether to block execution until figure is closed.
    """
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(1, 1, figsize=figsize)
    ax.imshow(np.clip(image, 0.0, 1.0))
    ax.axis("off")

    if title is None:
        title = "Render Preview"
        if sample_count is not None:
            title += f" - {sample_count} SPP"
    ax.set_title(title)

    plt.tight_layout()
    plt.show(block=block)


def show_comparison(
    image_a: npt.NDArray[np.float32],
    image_b: npt.NDArray[np.float32],
    *,
    labels: tuple[str, str] = ("A", "B"),
    diff_scale: float = 10.0,
    figsize: tuple[float, float] = (16, 6),
    block: bool = True,
) -> float:
    """Display side-by-side comparison of two images with difference view.

    Args:
        image_a: First final image (H, W, 3).
        image_b: Second final image (H, W, 3).
        labels: Labels for the two images.
        diff_scale: Scale factor for difference amplification.
        figsize: Figure size in inches.
        block: Whether to block execution until figure is closed.

    Returns:
        RMSE between the two images.
    """
    import matplotlib.pyplot as plt

    rmse = compute_rmse(image_a, image_b)
    diff = np.abs(image_a.astype(np.float64) - image_b.astype(np.float64))
    diff_amplified = np.clip(diff * diff_scale, 0.0, 1.0)

    fig, axes = plt.subplots(1, 3, figsize=figsize)

    axes[0].imshow(np.clip(image_a, 0.0, 1.0))
    axes[0].set_title(labels[0])
    axes[0].axis("off")

    axes[1].imshow(np.clip(image_b, 0.0, 1.0))
    axes[1].set_title(labels[1])
    axes[1].axis("off")

    axes[2].imshow(diff_amplified)
    axes[2].set_title(f"Difference ({diff_scale}x) - RMSE: {rmse:.6f}")
    axes[2].axis("off")

    plt.tight_layout()
    plt.show(block=block)

    return rmse
