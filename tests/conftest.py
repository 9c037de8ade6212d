from pathlib import Path
from typing import Optional, Tuple

import pytest
from PIL import Image

from gallery_pipeline.config import PipelineConfig, RenditionSpec
from gallery_pipeline.orientation import ORIENTATION_TAG


def write_image(
    path: Path,
    size: Tuple[int, int],
    mode: str = "RGB",
    color=(200, 40, 40),
    fmt: Optional[str] = None,
    orientation: Optional[int] = None,
) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    im = Image.new(mode, size, color)
    options = {}
    if orientation is not None:
        exif = Image.Exif()
        exif[ORIENTATION_TAG] = orientation
        options["exif"] = exif
    im.save(path, format=fmt, **options)
    return path


@pytest.fixture
def workshops(tmp_path: Path) -> Path:
    root = tmp_path / "workshops"
    root.mkdir()
    return root


@pytest.fixture
def small_config() -> PipelineConfig:
    return PipelineConfig(
        renditions=(
            RenditionSpec("thumb", 40),
            RenditionSpec("medium", 80),
            RenditionSpec("large", 120),
        )
    )


def write_mpo(path: Path, size: Tuple[int, int]) -> Path:
    """Two-frame multi-picture JPEG, as many phone cameras write."""
    path.parent.mkdir(parents=True, exist_ok=True)
    first = Image.new("RGB", size, (200, 40, 40))
    second = Image.new("RGB", size, (40, 40, 200))
    first.save(path, format="MPO", save_all=True, append_images=[second])
    return path
