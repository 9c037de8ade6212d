import logging
import time
from dataclasses import asdict
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .catalog import scan_workshops
from .config import WORKSHOPS_DIR, load_config
from .metadata import MetadataError, find_metadata_file, load_project_metadata
from .processing import ImageProcessor, ManifestEntry, ProcessingResult, ProjectNotFound
from .schemas import CategoryListing, ManifestEntryModel, ProjectMetadata, ProjectResult, WorkshopDetail

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("gallery-pipeline-api")

app = FastAPI(title="Gallery Image Pipeline API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_processor() -> ImageProcessor:
    return ImageProcessor(WORKSHOPS_DIR, load_config())


def _result_model(result: ProcessingResult) -> ProjectResult:
    return ProjectResult(**asdict(result))


def _manifest_model(manifest: Dict[str, List[ManifestEntry]]) -> Dict[str, List[ManifestEntryModel]]:
    return {
        name: [ManifestEntryModel(**asdict(entry)) for entry in entries]
        for name, entries in manifest.items()
    }


def _process_all(processor: ImageProcessor) -> Dict[str, ProjectResult]:
    start = time.perf_counter()
    results = processor.process_all_projects()
    processing_ms = int((time.perf_counter() - start) * 1000)
    logger.info("Processed %d project(s) in %d ms", len(results), processing_ms)
    return {name: _result_model(r) for name, r in results.items()}


@app.get("/")
def root():
    return {"message": "API is working"}


@app.get("/api/manifest", response_model=Dict[str, List[ManifestEntryModel]])
def get_manifest(processor: ImageProcessor = Depends(get_processor)):
    return _manifest_model(processor.build_manifest())


@app.post("/api/projects/process", response_model=Dict[str, ProjectResult])
def process_all_projects(processor: ImageProcessor = Depends(get_processor)):
    return _process_all(processor)


@app.post("/api/projects/{name}/process", response_model=ProjectResult)
def process_project(name: str, processor: ImageProcessor = Depends(get_processor)):
    try:
        result = processor.process_project(name)
    except ProjectNotFound:
        raise HTTPException(status_code=404, detail="Project directory not found.")

    logger.info(
        "Project %s: %d processed, %d errors", name, len(result.processed), len(result.errors)
    )
    return _result_model(result)


@app.get("/api/projects/{name}/metadata", response_model=ProjectMetadata)
def get_project_metadata(name: str, processor: ImageProcessor = Depends(get_processor)):
    try:
        project_dir = processor.project_dir(name)
    except ProjectNotFound:
        raise HTTPException(status_code=404, detail="Project directory not found.")

    path = find_metadata_file(project_dir, processor.config.sidecar_names)
    try:
        metadata = load_project_metadata(path) if path else {}
    except MetadataError as e:
        logger.warning("Bad metadata for project %s: %s", name, e)
        raise HTTPException(status_code=422, detail=str(e))

    return ProjectMetadata(project=name, metadata=metadata)


@app.get("/api/image-processor")
def legacy_image_processor(
    action: str = "manifest",
    workshop: Optional[str] = None,
    processor: ImageProcessor = Depends(get_processor),
):
    """Query-string form used by the legacy front-end: ?action=process&workshop=<name>."""
    if action != "process":
        return _manifest_model(processor.build_manifest())

    if not workshop:
        return _process_all(processor)

    try:
        return _result_model(processor.process_project(workshop))
    except ProjectNotFound:
        return JSONResponse(status_code=404, content={"error": "Workshop directory not found"})


@app.get("/api/workshops")
def list_workshops(
    workshop_id: Optional[str] = Query(None, alias="id"),
    category: Optional[str] = None,
    processor: ImageProcessor = Depends(get_processor),
):
    """
    Workshops that have a categorised sidecar, sorted by category then title.
    Projects without a sizes/ directory are processed before they are listed.
    """
    listing = scan_workshops(processor)

    if workshop_id is not None:
        for workshop in listing.workshops:
            if workshop.id == workshop_id:
                return WorkshopDetail(workshop=workshop).model_dump(exclude_none=True)
        raise HTTPException(status_code=404, detail="Workshop not found.")

    if category is not None:
        matches = [w for w in listing.workshops if w.category == category]
        return CategoryListing(workshops=matches, category=category, count=len(matches)).model_dump(
            exclude_none=True
        )

    return listing.model_dump(exclude_none=True)
