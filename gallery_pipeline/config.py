import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple


WORKSHOPS_DIR = Path(os.environ.get("GALLERY_WORKSHOPS_DIR", "workshops"))

SIZES_DIRNAME = "sizes"
ORIGINALS_DIRNAME = "originals"

DEFAULT_SIZES_HINT = "(max-width: 600px) 100vw, (max-width: 1200px) 50vw, 33vw"
DEFAULT_URL_PREFIX = "/workshops"
DEFAULT_QUALITY = 85


@dataclass(frozen=True)
class RenditionSpec:
    name: str
    bound: int  # max length of the longer edge, in pixels


DEFAULT_RENDITIONS: Tuple[RenditionSpec, ...] = (
    RenditionSpec("thumb", 400),
    RenditionSpec("medium", 800),
    RenditionSpec("large", 1200),
    RenditionSpec("xlarge", 2000),
)


@dataclass(frozen=True)
class PipelineConfig:
    """
    Everything the pipeline needs to know besides the directory it works on.

    Renditions are kept ordered smallest first regardless of the order given.
    """

    renditions: Tuple[RenditionSpec, ...] = DEFAULT_RENDITIONS
    quality: int = DEFAULT_QUALITY
    sizes_hint: str = DEFAULT_SIZES_HINT
    url_prefix: str = DEFAULT_URL_PREFIX
    deadline_seconds: Optional[float] = None
    workers: int = 1
    strict_marker: bool = False
    sidecar_names: Tuple[str, ...] = field(default=("project.yaml", "metadata.yaml"))

    def __post_init__(self) -> None:
        renditions = tuple(self.renditions)
        if not renditions:
            raise ValueError("At least one rendition is required.")

        names = [r.name for r in renditions]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate rendition names: {names}")
        for r in renditions:
            if r.bound <= 0:
                raise ValueError(f"Rendition {r.name!r} needs a positive bound, got {r.bound}")

        if not 0 <= self.quality <= 100:
            raise ValueError(f"quality must be within 0..100, got {self.quality}")
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")
        if self.deadline_seconds is not None and self.deadline_seconds < 0:
            raise ValueError("deadline_seconds cannot be negative")

        object.__setattr__(self, "renditions", tuple(sorted(renditions, key=lambda r: r.bound)))
        object.__setattr__(self, "url_prefix", self.url_prefix.rstrip("/"))

    @property
    def smallest(self) -> RenditionSpec:
        return self.renditions[0]


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def load_config() -> PipelineConfig:
    """Build a PipelineConfig from GALLERY_* environment variables."""
    deadline = os.environ.get("GALLERY_DEADLINE_SECONDS")
    return PipelineConfig(
        quality=int(os.environ.get("GALLERY_IMAGE_QUALITY", DEFAULT_QUALITY)),
        url_prefix=os.environ.get("GALLERY_URL_PREFIX", DEFAULT_URL_PREFIX),
        deadline_seconds=float(deadline) if deadline else None,
        workers=int(os.environ.get("GALLERY_WORKERS", 1)),
        strict_marker=_env_flag("GALLERY_STRICT_MARKER"),
    )
