from pydantic import BaseModel
from typing import Dict, List, Optional, Union


class FileErrorModel(BaseModel):
    filename: str
    error: str


class ProjectResult(BaseModel):
    processed: List[str] = []
    moved_to_originals: List[str] = []
    errors: List[FileErrorModel] = []
    already_processed: List[str] = []
    deferred: List[str] = []
    error: Optional[str] = None


class ManifestEntryModel(BaseModel):
    filename: str
    srcset: str
    sizes: str


class ProjectMetadata(BaseModel):
    project: str
    metadata: Dict[str, Union[str, List[str]]]


class WorkshopImage(BaseModel):
    filename: str
    path: str
    name: str


class Workshop(BaseModel):
    id: str
    title: str
    category: str
    hero_image: Optional[str] = None
    images: List[WorkshopImage]
    created_date: str
    difficulty: Optional[str] = None
    estimated_time: Optional[str] = None
    short_description: Optional[str] = None
    materials: Optional[List[str]] = None
    tools: Optional[List[str]] = None
    steps: Optional[List[str]] = None
    has_steps: bool = False
    nsfw: Optional[bool] = None


class WorkshopCategory(BaseModel):
    name: str
    count: int
    workshops: List[str]


class WorkshopListing(BaseModel):
    workshops: List[Workshop]
    categories: List[WorkshopCategory]
    total_count: int


class WorkshopDetail(BaseModel):
    workshop: Workshop


class CategoryListing(BaseModel):
    workshops: List[Workshop]
    category: str
    count: int
