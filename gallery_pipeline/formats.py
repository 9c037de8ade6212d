"""
Supported source formats and how each one is decoded and encoded.

Every ImageFormat member has exactly one entry in _CODECS; adding a format
means adding both its extensions and its save options there.
"""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

from PIL import Image, UnidentifiedImageError


class ImageDecodeError(Exception):
    """Source bytes could not be read as the format their extension claims."""


class ImageFormat(Enum):
    JPEG = "JPEG"
    PNG = "PNG"
    WEBP = "WEBP"

    @classmethod
    def from_filename(cls, filename: str) -> Optional["ImageFormat"]:
        ext = Path(filename).suffix.lower().lstrip(".")
        for fmt, codec in _CODECS.items():
            if ext in codec.extensions:
                return fmt
        return None

    @property
    def has_alpha(self) -> bool:
        return _CODECS[self].keeps_alpha

    def decode(self, path: Path) -> Image.Image:
        """
        Open and fully load the image, checking the content matches this format.
        The caller owns (and must close) the returned image.
        """
        try:
            im = Image.open(path)
        except (UnidentifiedImageError, OSError) as e:
            raise ImageDecodeError(f"Failed to load image: {e}") from e

        try:
            if im.format not in _CODECS[self].pil_formats:
                raise ImageDecodeError(
                    f"Expected {self.value} data, found {im.format or 'unknown'}"
                )
            im.load()
        except ImageDecodeError:
            im.close()
            raise
        except (OSError, SyntaxError, ValueError) as e:
            im.close()
            raise ImageDecodeError(f"Failed to load image: {e}") from e

        return im

    def prepare(self, image: Image.Image) -> Image.Image:
        """Return an image in a mode this format can store."""
        return _CODECS[self].prepare(image)

    def encode(self, image: Image.Image, path: Path, quality: int) -> None:
        codec = _CODECS[self]
        image.save(path, format=self.value, **codec.save_options(quality))


def _prepare_opaque(image: Image.Image) -> Image.Image:
    if image.mode in ("RGB", "L"):
        return image
    return image.convert("RGB")


def _prepare_alpha(image: Image.Image) -> Image.Image:
    if image.mode in ("RGBA", "RGB", "L"):
        if image.mode != "RGBA" and "transparency" in image.info:
            return image.convert("RGBA")
        return image
    # P, LA, I;16 and friends
    return image.convert("RGBA")


@dataclass(frozen=True)
class _Codec:
    extensions: Tuple[str, ...]
    pil_formats: Tuple[str, ...]  # what Image.open may report for this content
    keeps_alpha: bool
    prepare: Callable[[Image.Image], Image.Image]
    save_options: Callable[[int], Dict[str, Any]]


_CODECS: Dict[ImageFormat, _Codec] = {
    ImageFormat.JPEG: _Codec(
        extensions=("jpg", "jpeg"),
        pil_formats=("JPEG", "MPO"),
        keeps_alpha=False,
        prepare=_prepare_opaque,
        save_options=lambda quality: {"quality": quality},
    ),
    ImageFormat.PNG: _Codec(
        extensions=("png",),
        pil_formats=("PNG",),
        keeps_alpha=True,
        prepare=_prepare_alpha,
        save_options=lambda quality: {},
    ),
    ImageFormat.WEBP: _Codec(
        extensions=("webp",),
        pil_formats=("WEBP",),
        keeps_alpha=True,
        prepare=_prepare_alpha,
        save_options=lambda quality: {"quality": quality},
    ),
}


SUPPORTED_EXTENSIONS = frozenset(ext for codec in _CODECS.values() for ext in codec.extensions)
