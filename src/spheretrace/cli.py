"""Command-line interface for rendering sphere scenes.

Usage:
    spheretrace [options]
    python -m spheretrace [options]

Options:
    --scene NAME          Built-in scene: random (default) or three-spheres
    --scene-file PATH     JSON or Hjson scene file (instead of --scene)
    --width WIDTH         Image width in pixels (default: 1200)
    --aspect-ratio RATIO  Width / height (default: 16/9)
    --samples SAMPLES     Samples per pixel (default: 100)
    --max-depth DEPTH     Maximum ray segments per sample (default: 50)
    --seed SEED           Seed for sampling and the random scene (default: 0)
    --fuzz FUZZ           Metal fuzz of the three-spheres scene (default: 0)
    --output PATH         Output file, or - for PPM on stdout (default: render.png)
    --batch-size SIZE     Samples per progress update (default: 10)
    --arch ARCH           Taichi backend: cpu (default) or gpu
    --preview             Show the result in a Matplotlib window
    --quiet               Suppress progress output
    --log-level LEVEL     Logging level (default: INFO)

Render parameters given on the command line override those in a scene file.

Example:
    spheretrace --scene three-spheres --width 400 --samples 50 --output spheres.png
    spheretrace --width 400 --samples 20 --output - > image.ppm
"""

import argparse
import contextlib
import dataclasses
import logging
import sys
import time

from spheretrace.config import ConfigurationError, RenderConfig, SceneFile, load_scene_file

logger = logging.getLogger(__name__)

SCENE_CHOICES = ("random", "three-spheres")
DEFAULT_SCENE = "random"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
STDOUT_OUTPUT = "-"


def _positive_int(value: str) -> int:
    """argparse type for integers >= 1."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {number}")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="spheretrace",
        description="Render a scene of spheres with a Monte Carlo ray tracer.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    scene_group = parser.add_mutually_exclusive_group()
    scene_group.add_argument(
        "--scene",
        choices=SCENE_CHOICES,
        default=None,
        help="Built-in scene (default: random)",
    )
    scene_group.add_argument(
        "--scene-file",
        type=str,
        default=None,
        help="JSON or Hjson scene file with render, camera, materials and spheres",
    )
    parser.add_argument("--width", type=int, default=None, help="Image width in pixels (default: 1200)")
    parser.add_argument(
        "--aspect-ratio",
        type=float,
        default=None,
        help="Image width divided by height (default: 16/9)",
    )
    parser.add_argument("--samples", type=int, default=None, help="Samples per pixel (default: 100)")
    parser.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum ray segments per sample (default: 50)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for sampling and for the random scene layout (default: 0)",
    )
    parser.add_argument(
        "--fuzz",
        type=float,
        default=None,
        help="Metal fuzz of the three-spheres scene, in [0, 1] (default: 0)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="render.png",
        help="Output file (.ppm or any Pillow format), or - for PPM on stdout",
    )
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=10,
        help="Samples per progress update (default: 10)",
    )
    parser.add_argument(
        "--arch",
        choices=("cpu", "gpu"),
        default="cpu",
        help="Taichi backend (default: cpu)",
    )
    parser.add_argument("--preview", action="store_true", help="Show the result in a window")
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default="INFO",
        help="Logging level (default: INFO)",
    )
    return parser


def build_render_config(args: argparse.Namespace) -> tuple[RenderConfig, SceneFile | None]:
    """Combine the scene file (if any) and command-line overrides.

    Raises:
        ConfigurationError: If the result is invalid or the scene file is malformed.
        OSError: If the scene file cannot be read.
    """
    scene_file = load_scene_file(args.scene_file) if args.scene_file else None
    base = scene_file.render_config() if scene_file is not None else RenderConfig()

    overrides = {
        "image_width": args.width,
        "aspect_ratio": args.aspect_ratio,
        "samples_per_pixel": args.samples,
        "max_depth": args.max_depth,
        "seed": args.seed,
    }
    config = dataclasses.replace(
        base, **{key: value for key, value in overrides.items() if value is not None}
    )
    config.validate()
    return config, scene_file


def init_taichi(arch: str) -> None:
    """Initialize the Taichi runtime, falling back to CPU if the GPU fails."""
    import taichi as ti

    if arch == "gpu":
        try:
            ti.init(arch=ti.gpu, log_level=ti.WARN)
            logger.info("Using GPU backend")
            return
        except Exception as e:
            logger.warning("GPU backend unavailable (%s), using CPU", e)
    ti.init(arch=ti.cpu, log_level=ti.WARN)
    logger.info("Using CPU backend")


def _build_scene(args: argparse.Namespace, config: RenderConfig, scene_file: SceneFile | None):
    """Create the scene and its camera. Requires an initialized Taichi runtime."""
    from spheretrace.camera.thin_lens import ThinLensCamera
    from spheretrace.scene.manager import SceneManager
    from spheretrace.scene.presets import (
        create_random_spheres_scene,
        create_three_spheres_scene,
    )

    scene_name = args.scene or DEFAULT_SCENE
    if args.fuzz is not None and (scene_file is not None or scene_name != "three-spheres"):
        logger.warning("--fuzz only applies to the three-spheres scene; ignoring it")

    if scene_file is not None:
        scene = SceneManager()
        scene.from_config(scene_file.scene_config())
        camera_data = {"aspect_ratio": config.aspect_ratio, **scene_file.camera_overrides()}
        camera = ThinLensCamera.from_dict(camera_data)
    elif scene_name == "three-spheres":
        fuzz = args.fuzz if args.fuzz is not None else 0.0
        scene, camera = create_three_spheres_scene(fuzz=fuzz, aspect_ratio=config.aspect_ratio)
    else:
        scene, camera = create_random_spheres_scene(
            seed=config.seed, aspect_ratio=config.aspect_ratio
        )

    logger.info(
        "Scene: %d spheres, %d materials",
        scene.get_sphere_count(),
        scene.get_material_count(),
    )
    return scene, camera


def render(args: argparse.Namespace, config: RenderConfig, scene_file: SceneFile | None) -> None:
    """Build the scene, render it and write the output."""
    # Lazy imports to allow Taichi initialization first
    from spheretrace.camera.thin_lens import setup_camera
    from spheretrace.core.progressive import ProgressiveRenderer
    from spheretrace.preview.export import save_image, write_ppm

    _scene, camera = _build_scene(args, config, scene_file)
    setup_camera(camera)

    renderer = ProgressiveRenderer(config)
    start_time = time.perf_counter()

    def progress_callback(current: int, target: int) -> None:
        elapsed = time.perf_counter() - start_time
        progress_pct = (current / target) * 100 if target > 0 else 0
        samples_per_sec = current / elapsed if elapsed > 0 else 0
        print(
            f"\r  Progress: {current}/{target} samples "
            f"({progress_pct:.1f}%) - {samples_per_sec:.1f} spp/s",
            end="",
            file=sys.stderr,
            flush=True,
        )

    renderer.render(
        batch_size=args.batch_size,
        callback=None if args.quiet else progress_callback,
    )
    if not args.quiet:
        print(file=sys.stderr)  # Newline after progress

    image = renderer.get_image_numpy()
    if args.output == STDOUT_OUTPUT:
        write_ppm(image, sys.stdout)
        sys.stdout.flush()
    else:
        save_image(image, args.output)

    if args.preview:
        from spheretrace.preview.display import show_preview

        show_preview(image, sample_count=renderer.sample_count)


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        0 on success, 1 on configuration or rendering errors. Usage errors
        exit with status 2 through argparse.
    """
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.quiet else getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config, scene_file = build_render_config(args)
    except (ConfigurationError, OSError) as e:
        logger.error("%s", e)
        return 1

    try:
        # Taichi prints its banner to stdout, which may carry the image
        with contextlib.redirect_stdout(sys.stderr):
            init_taichi(args.arch)
        render(args, config, scene_file)
    except (ValueError, RuntimeError, OSError) as e:
        logger.error("%s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
