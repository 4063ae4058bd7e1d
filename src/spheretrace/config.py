"""Render configuration and scene file loading.

This module holds the plain-Python side of a render setup: image size,
sampling parameters and the scene file format. It does not import Taichi, so
it can be used before the Taichi runtime is initialized.

Scene files are Hjson (plain JSON is valid Hjson) documents of the form::

    {
        "render": {"image_width": 400, "aspect_ratio": 1.7778,
                   "samples_per_pixel": 100, "max_depth": 50, "seed": 0},
        "camera": {"lookfrom": [13, 2, 3], "lookat": [0, 0, 0], "vfov": 20},
        "materials": [{"type": "lambertian", "albedo": [0.5, 0.5, 0.5]}],
        "spheres": [{"center": [0, -1000, 0], "radius": 1000, "material_id": 0}]
    }

Every top-level key is optional. Sphere material_id values index the
materials list. Each section is described by a pydantic model; types and
unknown keys are checked there, value ranges where the objects are built.
"""

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Annotated, Any, Literal, TypeVar

import hjson
from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)

# Size of the preallocated render target
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

Vec3 = tuple[float, float, float]


class ConfigurationError(ValueError):
    """Raised when render, camera or scene parameters are invalid."""


@dataclass
class RenderConfig:
    """Image and sampling parameters for a render.

    Attributes:
        image_width: Output width in pixels.
        aspect_ratio: Width divided by height; the height is derived from it.
        samples_per_pixel: Number of jittered camera samples per pixel.
        max_depth: Maximum number of ray segments per camera sample.
        seed: Global seed of the per-sample random streams.
    """

    image_width: int = 1200
    aspect_ratio: float = 16.0 / 9.0
    samples_per_pixel: int = 100
    max_depth: int = 50
    seed: int = 0

    @property
    def image_height(self) -> int:
        """Image height in pixels, int(image_width / aspect_ratio)."""
        return int(self.image_width / self.aspect_ratio)

    def validate(self) -> None:
        """Check the parameters before any rendering work starts.

        Raises:
            ConfigurationError: If a parameter is out of range.
        """
        if self.aspect_ratio <= 0.0:
            raise ConfigurationError(f"aspect_ratio must be positive, got {self.aspect_ratio}")
        if self.image_width <= 0:
            raise ConfigurationError(f"image_width must be positive, got {self.image_width}")
        if self.image_height <= 0:
            raise ConfigurationError(
                f"image height int({self.image_width} / {self.aspect_ratio}) must be positive"
            )
        if self.image_width > MAX_IMAGE_WIDTH or self.image_height > MAX_IMAGE_HEIGHT:
            raise ConfigurationError(
                f"Image size {self.image_width}x{self.image_height} exceeds the maximum "
                f"of {MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT}"
            )
        if self.samples_per_pixel < 1:
            raise ConfigurationError(
                f"samples_per_pixel must be at least 1, got {self.samples_per_pixel}"
            )
        if self.max_depth < 0:
            raise ConfigurationError(f"max_depth must be non-negative, got {self.max_depth}")

    def to_dict(self) -> dict[str, Any]:
        """Export the configuration to a dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "RenderConfig":
        """Create a configuration from a dictionary, as found in scene files.

        Missing keys keep their defaults.

        Raises:
            ConfigurationError: If a key is unknown or a value is not a number.
        """
        section = validate_section(RenderSection, data, "render parameters")
        return section.to_render_config()


# =============================================================================
# Scene File Sections
# =============================================================================


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class RenderSection(_Section):
    image_width: int = Field(default=RenderConfig.image_width)
    aspect_ratio: float = Field(default=RenderConfig.aspect_ratio)
    samples_per_pixel: int = Field(default=RenderConfig.samples_per_pixel)
    max_depth: int = Field(default=RenderConfig.max_depth)
    seed: int = Field(default=RenderConfig.seed)

    def to_render_config(self) -> RenderConfig:
        return RenderConfig(**self.model_dump())


class CameraSection(_Section):
    """Camera parameters; the defaults frame the random sphere scene."""

    lookfrom: Vec3 = Field(default=(13.0, 2.0, 3.0))
    lookat: Vec3 = Field(default=(0.0, 0.0, 0.0))
    vup: Vec3 = Field(default=(0.0, 1.0, 0.0))
    vfov: float = Field(default=20.0)
    aspect_ratio: float = Field(default=16.0 / 9.0)
    aperture: float = Field(default=0.1)
    focus_dist: float = Field(default=10.0)


class LambertianSection(_Section):
    type: Literal["lambertian"] = Field()
    albedo: Vec3 = Field(default=(0.5, 0.5, 0.5))


class MetalSection(_Section):
    type: Literal["metal"] = Field()
    albedo: Vec3 = Field(default=(0.8, 0.8, 0.8))
    fuzz: float = Field(default=0.0)


class DielectricSection(_Section):
    type: Literal["dielectric"] = Field()
    ior: float = Field(default=1.5)


MaterialSection = Annotated[
    LambertianSection | MetalSection | DielectricSection,
    Field(discriminator="type"),
]


class SphereSection(_Section):
    center: Vec3 = Field(default=(0.0, 0.0, 0.0))
    radius: float = Field()
    material_id: int = Field(default=0)


class SceneConfig(_Section):
    """Materials and spheres of a scene.

    Attributes:
        materials: Material entries, tagged by "type" ("lambertian", "metal"
            or "dielectric").
        spheres: Sphere entries. material_id indexes the materials list.
    """

    materials: list[MaterialSection] = Field(default_factory=list)
    spheres: list[SphereSection] = Field(default_factory=list)


class SceneFile(_Section):
    """Contents of a parsed scene file.

    Attributes:
        render: Render parameters; defaults where the file has none.
        camera: Camera parameters, or None to use the default camera. Only
            the keys set in the file are meant to override the defaults.
        materials: Material entries, see SceneConfig.
        spheres: Sphere entries, see SceneConfig.
    """

    render: RenderSection = Field(default_factory=RenderSection)
    camera: CameraSection | None = Field(default=None)
    materials: list[MaterialSection] = Field(default_factory=list)
    spheres: list[SphereSection] = Field(default_factory=list)

    def render_config(self) -> RenderConfig:
        """The render parameters as a RenderConfig."""
        return self.render.to_render_config()

    def camera_overrides(self) -> dict[str, Any]:
        """The camera keys given in the file, empty if there is no camera."""
        if self.camera is None:
            return {}
        return self.camera.model_dump(exclude_unset=True)

    def scene_config(self) -> SceneConfig:
        """The materials and spheres in the form SceneManager.from_config() takes."""
        return SceneConfig(materials=self.materials, spheres=self.spheres)


SectionT = TypeVar("SectionT", bound=BaseModel)


def validate_section(model: type[SectionT], data: Any, name: str) -> SectionT:
    """Validate decoded data against a section model.

    Raises:
        ConfigurationError: With the pydantic error report, if validation fails.
    """
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid {name}: {e}") from e


def parse_scene_data(data: Any) -> SceneFile:
    """Build a SceneFile from decoded scene file data.

    Raises:
        ConfigurationError: If the structure does not match the scene format.
    """
    return validate_section(SceneFile, data, "scene file")


def load_scene_file(path: str | Path) -> SceneFile:
    """Read and parse a scene file.

    Args:
        path: Path to the scene file.

    Returns:
        The parsed scene file. Render parameters are validated; the camera
        and scene entries are range-checked when they are built.

    Raises:
        OSError: If the file cannot be read.
        ConfigurationError: If the file is not valid Hjson or not a scene.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    try:
        data = hjson.loads(text)
    except hjson.HjsonDecodeError as e:
        raise ConfigurationError(f"{path}: invalid Hjson: {e}") from e

    scene_file = parse_scene_data(data)
    scene_file.render_config().validate()
    logger.debug(
        "Read scene file %s: %d materials, %d spheres",
        path,
        len(scene_file.materials),
        len(scene_file.spheres),
    )
    return scene_file
