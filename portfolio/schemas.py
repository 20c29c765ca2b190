"""
Pydantic schemas for request and response data validation.
Shared by the API routes and the gallery client so both ends agree on the wire format.
Wire keys are camelCase (createdAt); Python attributes are snake_case.
"""
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Any, Dict, Iterable, List, Literal, Optional

Category = Literal["finished", "wip"]
CATEGORIES = ("finished", "wip")

MIN_WIDTH = 1
MAX_WIDTH = 7


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,  # Enable conversion from SQLAlchemy models
    )


class GalleryImage(WireModel):
    """
    One artwork/photo.
    Returned by every gallery endpoint and held by the client synchronizer.
    Timestamps are unset on optimistic records built by the client.
    """
    id: str
    src: str
    alt: str
    description: str = ""
    category: Category
    year: int
    order: int = 0
    width: int = Field(default=1, ge=MIN_WIDTH, le=MAX_WIDTH)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GalleryData(WireModel):
    """
    All images partitioned by category, each list sorted by order.
    Used by GET /api/gallery.
    """
    finished: List[GalleryImage] = Field(default_factory=list)
    wip: List[GalleryImage] = Field(default_factory=list)

    @classmethod
    def from_images(cls, images: Iterable[Any]) -> "GalleryData":
        """Partition images (ORM rows or GalleryImage) preserving their iteration order."""
        finished, wip = [], []
        for image in images:
            record = GalleryImage.model_validate(image)
            (finished if record.category == "finished" else wip).append(record)
        return cls(finished=finished, wip=wip)

    def all_images(self) -> List[GalleryImage]:
        return [*self.finished, *self.wip]

    def find(self, image_id: str) -> Optional[GalleryImage]:
        for image in self.all_images():
            if image.id == image_id:
                return image
        return None


class ImagePatch(WireModel):
    """
    Partial update for a gallery image.
    Used by PUT /api/gallery/{id}. Only fields that are set (and not None) are applied.
    """
    alt: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    category: Optional[Category] = None
    year: Optional[int] = Field(default=None, ge=0)
    order: Optional[int] = None
    width: Optional[int] = Field(default=None, ge=MIN_WIDTH, le=MAX_WIDTH)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class ExistingImageCreate(WireModel):
    """
    Request schema for registering an image whose bytes are already in storage.
    Used by POST /api/gallery/existing.
    """
    src: str = Field(min_length=1)
    alt: str = Field(min_length=1)
    description: str = Field(min_length=1)
    category: Category
    year: int = Field(ge=0)
    width: int = Field(default=1, ge=MIN_WIDTH, le=MAX_WIDTH)


class ImageReorderRequest(WireModel):
    """
    Request schema for reordering gallery images.
    Used by PUT /api/gallery/reorder.
    Contains image IDs in the desired display order (categories may be mixed).
    """
    image_ids: List[str]

    @field_validator('image_ids')
    @classmethod
    def validate_unique_ids(cls, v):
        if len(v) != len(set(v)):
            raise ValueError('Duplicate image IDs are not allowed')
        return v


class Link(WireModel):
    """Navigation link as returned by the links endpoints."""
    id: int
    text: str
    url: str
    order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LinkCreate(WireModel):
    text: str = Field(min_length=1)
    url: str = Field(min_length=1)


class LinkUpdate(LinkCreate):
    pass


class LinkRef(WireModel):
    """Link entry inside a reorder request; only the id matters."""
    model_config = ConfigDict(extra="ignore")

    id: int


class LinkReorderRequest(WireModel):
    """
    Request schema for reordering links.
    Used by PUT /api/links/reorder. Links are listed in the desired order.
    """
    links: List[LinkRef]

    @field_validator('links')
    @classmethod
    def validate_unique_ids(cls, v):
        ids = [link.id for link in v]
        if len(ids) != len(set(ids)):
            raise ValueError('Duplicate link IDs are not allowed')
        return v


class AuthRequest(WireModel):
    password: str


class SuccessResponse(WireModel):
    success: bool = True
