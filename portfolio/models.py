"""
SQLAlchemy models for the application.
All database models inherit from Base (declarative base).
"""
import uuid

from sqlalchemy import CheckConstraint, Column, Integer, String, Text, DateTime
from sqlalchemy.sql import func
from portfolio.database import Base


def _new_image_id() -> str:
    return uuid.uuid4().hex


class GalleryImage(Base):
    """
    Gallery image model.
    Stores artwork metadata; the image bytes live in Cloudinary under `src`.
    """
    __tablename__ = "gallery_images"
    __table_args__ = (
        CheckConstraint("width BETWEEN 1 AND 7", name="ck_gallery_images_width"),
        CheckConstraint("category IN ('finished', 'wip')", name="ck_gallery_images_category"),
    )

    id = Column(String(32), primary_key=True, default=_new_image_id)
    src = Column(String, nullable=False, unique=True)
    alt = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(16), nullable=False, index=True)
    year = Column(Integer, nullable=False)
    order = Column(Integer, nullable=False, default=0, index=True)
    width = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class Link(Base):
    """Outbound navigation link."""
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True)
    text = Column(String, nullable=False)
    url = Column(String, nullable=False)
    order = Column(Integer, nullable=False, default=0, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
