"""
Workshop listing built from project sidecars and the processed image layout.

A project is listed only when its sidecar names a category. Reading the
listing processes a project whose sizes/ directory does not exist yet.
"""
import datetime as dt
import logging
from pathlib import Path
from typing import Dict, Iterator, List, Optional
from urllib.parse import quote

from .config import SIZES_DIRNAME
from .metadata import MetadataError, MetadataValue, find_metadata_file, load_project_metadata
from .processing import ImageProcessor
from .schemas import Workshop, WorkshopCategory, WorkshopImage, WorkshopListing


logger = logging.getLogger(__name__)

# Where gallery images are looked up, first non-empty location wins.
PREFERRED_RENDITIONS = ("medium", "large", "thumb")
SOURCE_SUBDIRS = ("", "images")

HERO_NAMES = ("hero.jpg", "hero.png", "main.jpg", "main.png", "finished.jpg", "finished.png")
TRUTHY = ("true", "1", "yes")


def title_from_dirname(name: str) -> str:
    words = name.replace("-", " ").replace("_", " ").split(" ")
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _image_subdirs(processor: ImageProcessor) -> Iterator[str]:
    configured = {r.name for r in processor.config.renditions}
    for name in PREFERRED_RENDITIONS:
        if name in configured:
            yield f"{SIZES_DIRNAME}/{name}"
    yield from SOURCE_SUBDIRS


def project_images(processor: ImageProcessor, name: str) -> List[WorkshopImage]:
    project_dir = processor.base_dir / name
    for subdir in _image_subdirs(processor):
        directory = project_dir / subdir if subdir else project_dir
        filenames = processor.scan_images(directory)
        if not filenames:
            continue

        parts = [processor.config.url_prefix, quote(name)] + [quote(p) for p in subdir.split("/") if p]
        return [
            WorkshopImage(
                filename=filename,
                path="/".join(parts + [quote(filename)]),
                name=Path(filename).stem,
            )
            for filename in filenames
        ]
    return []


def pick_hero_image(images: List[WorkshopImage], metadata: Dict[str, MetadataValue]) -> Optional[str]:
    wanted = metadata.get("hero_image")
    if isinstance(wanted, str):
        for image in images:
            if image.filename == wanted:
                return image.path

    for hero_name in HERO_NAMES:
        for image in images:
            if image.filename.lower() == hero_name:
                return image.path

    return images[0].path if images else None


def _ensure_processed(processor: ImageProcessor, name: str) -> None:
    if (processor.base_dir / name / SIZES_DIRNAME).is_dir():
        return
    try:
        result = processor.process_project(name)
    except OSError:
        logger.exception("Image processing failed for workshop %s", name)
        return
    logger.info("Auto-processed workshop %s: %d images processed", name, len(result.processed))


def load_workshop(processor: ImageProcessor, name: str) -> Optional[Workshop]:
    project_dir = processor.base_dir / name
    path = find_metadata_file(project_dir, processor.config.sidecar_names)
    if path is None:
        return None

    try:
        metadata = load_project_metadata(path)
    except MetadataError as e:
        logger.warning("Skipping workshop %s: %s", name, e)
        return None

    category = metadata.get("category")
    if not isinstance(category, str) or not category:
        return None

    _ensure_processed(processor, name)
    images = project_images(processor, name)

    title = metadata.get("title")
    fields = {}
    for key in ("difficulty", "estimated_time", "short_description"):
        value = metadata.get(key)
        if isinstance(value, str) and value:
            fields[key] = value
    for key in ("materials", "tools", "steps"):
        value = metadata.get(key)
        if isinstance(value, list) and value:
            fields[key] = value

    nsfw = metadata.get("nsfw")
    if isinstance(nsfw, str) and nsfw:
        fields["nsfw"] = nsfw.lower() in TRUTHY

    return Workshop(
        id=name,
        title=title if isinstance(title, str) and title else title_from_dirname(name),
        category=category,
        hero_image=pick_hero_image(images, metadata),
        images=images,
        created_date=dt.date.fromtimestamp(project_dir.stat().st_mtime).isoformat(),
        has_steps="steps" in fields,
        **fields,
    )


def scan_workshops(processor: ImageProcessor) -> WorkshopListing:
    workshops = []
    for name in processor.list_projects():
        workshop = load_workshop(processor, name)
        if workshop is not None:
            workshops.append(workshop)

    workshops.sort(key=lambda w: (w.category, w.title))

    categories: Dict[str, WorkshopCategory] = {}
    for workshop in workshops:
        entry = categories.setdefault(
            workshop.category, WorkshopCategory(name=workshop.category, count=0, workshops=[])
        )
        entry.count += 1
        entry.workshops.append(workshop.id)

    return WorkshopListing(
        workshops=workshops,
        categories=list(categories.values()),
        total_count=len(workshops),
    )
