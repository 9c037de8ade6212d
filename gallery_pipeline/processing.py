import logging
import os
import shutil
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

from PIL import Image

from .config import ORIGINALS_DIRNAME, SIZES_DIRNAME, WORKSHOPS_DIR, PipelineConfig, RenditionSpec
from .formats import SUPPORTED_EXTENSIONS, ImageDecodeError, ImageFormat
from .orientation import correct_orientation, read_orientation


logger = logging.getLogger(__name__)


class ProjectNotFound(LookupError):
    """The requested project directory does not exist."""


@dataclass
class FileError:
    filename: str
    error: str


@dataclass
class ProcessingResult:
    processed: List[str] = field(default_factory=list)
    moved_to_originals: List[str] = field(default_factory=list)
    errors: List[FileError] = field(default_factory=list)
    already_processed: List[str] = field(default_factory=list)
    deferred: List[str] = field(default_factory=list)
    error: Optional[str] = None  # set when the project itself could not be processed


@dataclass(frozen=True)
class ImageOutcome:
    filename: str
    skipped: bool
    moved_original: bool = False
    written: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ManifestEntry:
    filename: str
    srcset: str
    sizes: str


def _partial_path(target: Path) -> Path:
    return target.with_name(f".{target.name}.partial")


def _replace_into(tmp: Path, target: Path) -> None:
    try:
        os.replace(tmp, target)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise


def scaled_size(width: int, height: int, bound: int) -> Tuple[int, int]:
    """
    Size that fits (width, height) inside a bound x bound box, keeping the
    aspect ratio: the longer edge becomes bound, the shorter one is scaled
    by the same ratio and truncated, never below 1.
    """
    if width >= height:
        return bound, max(1, height * bound // width)
    return max(1, width * bound // height), bound


class ImageProcessor:
    """
    Derives resized renditions for every project directory under base_dir.

    Layout per project:
        <project>/<sources>
        <project>/sizes/<rendition>/<filename>
        <project>/originals/<filename>
    """

    def __init__(self, base_dir: Path = WORKSHOPS_DIR, config: Optional[PipelineConfig] = None) -> None:
        self.base_dir = Path(base_dir)
        self.config = config or PipelineConfig()

    def list_projects(self) -> List[str]:
        if not self.base_dir.is_dir():
            return []
        return sorted(
            p.name for p in self.base_dir.iterdir() if p.is_dir() and not p.name.startswith(".")
        )

    def project_dir(self, name: str) -> Path:
        if not name or name in (".", "..") or Path(name).name != name or "\\" in name:
            raise ProjectNotFound(name)
        path = self.base_dir / name
        if not path.is_dir():
            raise ProjectNotFound(name)
        return path

    def scan_images(self, directory: Path) -> List[str]:
        """Sorted names of the supported image files directly inside directory."""
        if not directory.is_dir():
            return []

        sidecars = set(self.config.sidecar_names)
        names = []
        for entry in directory.iterdir():
            if entry.name in sidecars or not entry.is_file():
                continue
            if entry.suffix.lower().lstrip(".") in SUPPORTED_EXTENSIONS:
                names.append(entry.name)
        return sorted(names)

    def rendition_path(self, project_dir: Path, spec: RenditionSpec, filename: str) -> Path:
        return project_dir / SIZES_DIRNAME / spec.name / filename

    def ensure_dirs(self, project_dir: Path) -> None:
        for spec in self.config.renditions:
            (project_dir / SIZES_DIRNAME / spec.name).mkdir(parents=True, exist_ok=True)
        (project_dir / ORIGINALS_DIRNAME).mkdir(parents=True, exist_ok=True)

    def _deadline(self) -> Optional[float]:
        if self.config.deadline_seconds is None:
            return None
        return time.monotonic() + self.config.deadline_seconds

    def process_all_projects(self) -> Dict[str, ProcessingResult]:
        names = self.list_projects()
        deadline = self._deadline()

        if self.config.workers > 1 and len(names) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as ex:
                futures = {
                    name: ex.submit(self._process_listed, name, deadline)
                    for name in names
                }
            return {name: fut.result() for name, fut in futures.items()}

        return {name: self._process_listed(name, deadline) for name in names}

    def _process_listed(self, name: str, deadline: Optional[float]) -> ProcessingResult:
        try:
            return self._process_dir(self.base_dir / name, deadline)
        except OSError as e:
            logger.exception("Failed preparing project %s", name)
            return ProcessingResult(error=str(e))

    def process_project(self, name: str) -> ProcessingResult:
        """
        Process every pending image of one project.

        Raises ProjectNotFound when the directory is missing. Per-file problems
        never raise; they are collected in the returned result.
        """
        return self._process_dir(self.project_dir(name), self._deadline())

    def _process_dir(self, project_dir: Path, deadline: Optional[float]) -> ProcessingResult:
        result = ProcessingResult()
        self.ensure_dirs(project_dir)

        for filename in self.scan_images(project_dir):
            if deadline is not None and time.monotonic() >= deadline:
                result.deferred.append(filename)
                continue

            start = time.perf_counter()
            try:
                outcome = self.process_image(project_dir, filename)
            except Exception as e:
                logger.exception("Failed processing %s/%s", project_dir.name, filename)
                result.errors.append(FileError(filename=filename, error=str(e)))
                continue

            result.processed.append(filename)
            if outcome.skipped:
                result.already_processed.append(filename)
                logger.debug("Skipping %s/%s: already processed", project_dir.name, filename)
                continue

            if outcome.moved_original:
                result.moved_to_originals.append(filename)
            processing_ms = int((time.perf_counter() - start) * 1000)
            logger.info(
                "Processed %s/%s (%s) in %d ms",
                project_dir.name,
                filename,
                ", ".join(outcome.written),
                processing_ms,
            )

        if result.deferred:
            logger.warning(
                "Deadline reached in %s, deferred %d file(s)", project_dir.name, len(result.deferred)
            )
        return result

    def pending_renditions(self, project_dir: Path, filename: str) -> List[RenditionSpec]:
        """Renditions that still need to be written for filename (empty means done)."""
        renditions = self.config.renditions
        if self.config.strict_marker:
            if self.rendition_path(project_dir, self.config.smallest, filename).exists():
                return []
            return list(renditions)
        return [r for r in renditions if not self.rendition_path(project_dir, r, filename).exists()]

    def process_image(self, project_dir: Path, filename: str) -> ImageOutcome:
        source_path = project_dir / filename
        fmt = ImageFormat.from_filename(filename)
        if fmt is None:
            raise ImageDecodeError(f"Unsupported image type: {filename}")

        pending = self.pending_renditions(project_dir, filename)
        if not pending:
            return ImageOutcome(filename=filename, skipped=True)

        written = self._write_renditions(source_path, fmt, project_dir, pending)
        moved = self.archive_original(project_dir, filename)
        return ImageOutcome(filename=filename, skipped=False, moved_original=moved, written=written)

    def _write_renditions(
        self,
        source_path: Path,
        fmt: ImageFormat,
        project_dir: Path,
        pending: List[RenditionSpec],
    ) -> Tuple[str, ...]:
        written = []
        with fmt.decode(source_path) as source:
            image = source
            if fmt is ImageFormat.JPEG:
                image = correct_orientation(source, read_orientation(source_path))
            prepared = fmt.prepare(image)
            if prepared is not image and image is not source:
                image.close()
            image = prepared

            try:
                width, height = image.size
                for spec in pending:
                    target = self.rendition_path(project_dir, spec, source_path.name)
                    if max(width, height) <= spec.bound:
                        # no upscaling: keep the source bytes as they are
                        self._copy_file(source_path, target)
                    else:
                        size = scaled_size(width, height, spec.bound)
                        with image.resize(size, Image.LANCZOS) as resized:
                            self._save_image(resized, target, fmt)
                    written.append(spec.name)
            finally:
                if image is not source:
                    image.close()
        return tuple(written)

    def _copy_file(self, source_path: Path, target: Path) -> None:
        tmp = _partial_path(target)
        try:
            shutil.copyfile(source_path, tmp)
        except OSError:
            tmp.unlink(missing_ok=True)
            raise
        _replace_into(tmp, target)

    def _save_image(self, image: Image.Image, target: Path, fmt: ImageFormat) -> None:
        tmp = _partial_path(target)
        try:
            fmt.encode(image, tmp, self.config.quality)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
        _replace_into(tmp, target)

    def archive_original(self, project_dir: Path, filename: str) -> bool:
        """
        Rename the source into originals/. Returns False, leaving the source
        in place, when the rename fails.
        """
        source_path = project_dir / filename
        destination = project_dir / ORIGINALS_DIRNAME / filename
        if destination.exists():
            logger.warning("Replacing previously archived original %s", destination)
        try:
            os.rename(source_path, destination)
        except OSError as e:
            logger.warning("Could not move %s to %s: %s", source_path, destination, e)
            return False
        return True

    def generate_srcset(self, project: str, filename: str) -> str:
        project_dir = self.base_dir / project
        entries = []
        for spec in self.config.renditions:
            if not self.rendition_path(project_dir, spec, filename).exists():
                continue
            url = "/".join(
                [self.config.url_prefix, quote(project), SIZES_DIRNAME, quote(spec.name), quote(filename)]
            )
            entries.append(f"{url} {spec.bound}w")
        return ", ".join(entries)

    def build_manifest(self) -> Dict[str, List[ManifestEntry]]:
        """Srcset records for every project with at least one smallest rendition. Read only."""
        manifest: Dict[str, List[ManifestEntry]] = {}
        smallest = self.config.smallest

        for name in self.list_projects():
            marker_dir = self.base_dir / name / SIZES_DIRNAME / smallest.name
            filenames = self.scan_images(marker_dir)
            if not filenames:
                continue
            manifest[name] = [
                ManifestEntry(
                    filename=filename,
                    srcset=self.generate_srcset(name, filename),
                    sizes=self.config.sizes_hint,
                )
                for filename in filenames
            ]
        return manifest
