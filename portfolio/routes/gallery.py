"""
Gallery routes.
GET /gallery is public; every mutation requires the admin bearer token.
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, func
from cloudinary.exceptions import Error as CloudinaryError
import logging

from portfolio.config import settings
from portfolio.database import get_db
from portfolio.models import GalleryImage as GalleryImageRow
from portfolio.schemas import (
    Category,
    ExistingImageCreate,
    GalleryData,
    GalleryImage,
    ImagePatch,
    ImageReorderRequest,
    MAX_WIDTH,
    MIN_WIDTH,
    SuccessResponse,
)
from portfolio.services.cloudinary_service import delete_image, extract_public_id_from_url, upload_image
from portfolio.utils.auth import require_admin
from portfolio.utils.image_converter import convert_to_webp, identify_image

logger = logging.getLogger(__name__)

router = APIRouter()

# category then order is the canonical sort, ties broken by insertion
GALLERY_ORDERING = (
    GalleryImageRow.category.asc(),
    GalleryImageRow.order.asc(),
    GalleryImageRow.created_at.asc(),
    GalleryImageRow.id.asc(),
)


async def _next_order(db: AsyncSession, category: str) -> int:
    """Next free order value at the end of a category (0 for an empty category)."""
    result = await db.execute(
        select(func.max(GalleryImageRow.order)).where(GalleryImageRow.category == category)
    )
    max_order = result.scalar()
    return 0 if max_order is None else max_order + 1


async def _get_image_or_404(db: AsyncSession, image_id: str) -> GalleryImageRow:
    result = await db.execute(select(GalleryImageRow).where(GalleryImageRow.id == image_id))
    image = result.scalar_one_or_none()
    if not image:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Image not found", "detail": f"Image ID {image_id} does not exist"}
        )
    return image


@router.get("/gallery", response_model=GalleryData)
async def get_gallery(db: AsyncSession = Depends(get_db)):
    """
    Get all gallery images partitioned into finished and wip.

    Raises:
        HTTPException: 500 if the database query fails
    """
    try:
        result = await db.execute(select(GalleryImageRow).order_by(*GALLERY_ORDERING))
        images = result.scalars().all()

        gallery = GalleryData.from_images(images)
        logger.info(
            f"Retrieved gallery: {len(gallery.finished)} finished, {len(gallery.wip)} wip"
        )
        return gallery

    except SQLAlchemyError as e:
        logger.error(f"Failed to retrieve gallery: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to retrieve gallery", "detail": str(e)}
        )


@router.post("/gallery", response_model=GalleryImage, status_code=status.HTTP_201_CREATED)
async def upload_gallery_image(
    image: UploadFile = File(..., description="Image file"),
    alt: str = Form(..., min_length=1),
    description: str = Form(..., min_length=1),
    category: Category = Form(...),
    year: int = Form(..., ge=0),
    width: int = Form(1, ge=MIN_WIDTH, le=MAX_WIDTH),
    db: AsyncSession = Depends(get_db),
    authenticated: bool = Depends(require_admin)
):
    """
    Upload an image to Cloudinary and create its gallery record at the end of its category.

    Raises:
        HTTPException: 400 for non-image uploads, 413 for oversized files,
            500 if storage or database fails
    """
    if not image.content_type or not image.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid file type", "detail": f"File '{image.filename}' is not an image"}
        )

    content = await image.read()
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail={"error": "File too large", "detail": f"Maximum upload size is {settings.MAX_UPLOAD_BYTES} bytes"}
        )
    if identify_image(content) is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid image", "detail": f"File '{image.filename}' could not be decoded"}
        )

    converted, was_converted = await convert_to_webp(content)
    if was_converted and len(converted) < len(content):
        content = converted
    else:
        logger.debug(f"Keeping original format for {image.filename}")

    try:
        stored = await upload_image(content)
    except CloudinaryError as e:
        logger.error(f"Failed to store {image.filename}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to create image", "detail": str(e)}
        )

    try:
        record = GalleryImageRow(
            src=stored["url"],
            alt=alt,
            description=description,
            category=category,
            year=year,
            width=width,
            order=await _next_order(db, category),
        )
        db.add(record)
        await db.commit()
        await db.refresh(record)

        logger.info(f"Created image {record.id} ({category}, order={record.order}) from {image.filename}")
        return GalleryImage.model_validate(record)

    except SQLAlchemyError as e:
        logger.error(f"Error saving uploaded image: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to create image", "detail": str(e)}
        )


@router.post("/gallery/existing", response_model=GalleryImage, status_code=status.HTTP_201_CREATED)
async def register_existing_image(
    payload: ExistingImageCreate,
    db: AsyncSession = Depends(get_db),
    authenticated: bool = Depends(require_admin)
):
    """
    Create a gallery record for an image that is already in storage.

    Raises:
        HTTPException: 409 if an image with the same src exists
    """
    existing = await db.execute(select(GalleryImageRow.id).where(GalleryImageRow.src == payload.src))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"error": "Image already exists", "detail": f"An image with src {payload.src} is already registered"}
        )

    try:
        record = GalleryImageRow(
            **payload.model_dump(),
            order=await _next_order(db, payload.category),
        )
        db.add(record)
        await db.commit()
        await db.refresh(record)

        logger.info(f"Registered existing image {record.id}: {record.src}")
        return GalleryImage.model_validate(record)

    except SQLAlchemyError as e:
        logger.error(f"Error registering existing image: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to create existing image", "detail": str(e)}
        )


@router.put("/gallery/reorder", response_model=SuccessResponse)
async def reorder_gallery_images(
    request: ImageReorderRequest,
    db: AsyncSession = Depends(get_db),
    authenticated: bool = Depends(require_admin)
):
    """
    Rewrite image order in one transaction.

    The ids are given in the desired display order (categories may be mixed).
    Within each category, listed images take positions 0..n-1 in list order and
    unlisted images follow in their current relative order.

    Raises:
        HTTPException: 400 if no IDs, 404 if any ID is unknown, 500 if the update fails
    """
    image_ids = request.image_ids
    if not image_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "No image IDs provided", "detail": "At least one image ID is required"}
        )

    try:
        result = await db.execute(select(GalleryImageRow).order_by(*GALLERY_ORDERING))
        all_images = result.scalars().all()
        by_id = {image.id: image for image in all_images}

        missing_ids = [image_id for image_id in image_ids if image_id not in by_id]
        if missing_ids:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"error": "Images not found", "detail": f"Image IDs not found: {missing_ids}"}
            )

        listed = set(image_ids)
        for category in ("finished", "wip"):
            final_order = [by_id[i] for i in image_ids if by_id[i].category == category]
            final_order.extend(
                image for image in all_images
                if image.category == category and image.id not in listed
            )
            for position, image in enumerate(final_order):
                image.order = position

        await db.commit()

        logger.info(f"Reordered {len(image_ids)} images")
        return SuccessResponse()

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Error reordering gallery images: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to reorder gallery images", "detail": str(e)}
        )


@router.put("/gallery/{image_id}", response_model=GalleryImage)
async def update_gallery_image(
    image_id: str,
    patch: ImagePatch,
    db: AsyncSession = Depends(get_db),
    authenticated: bool = Depends(require_admin)
):
    """
    Apply a partial update to an image.

    Raises:
        HTTPException: 404 if image not found, 500 if update fails
    """
    image = await _get_image_or_404(db, image_id)

    try:
        changes = patch.changes()
        new_category = changes.get("category")
        if new_category and new_category != image.category and "order" not in changes:
            # a moved image goes to the end of its new category
            changes["order"] = await _next_order(db, new_category)
        for field, value in changes.items():
            setattr(image, field, value)
        await db.commit()
        await db.refresh(image)

        logger.info(f"Updated image {image_id}: {sorted(changes)}")
        return GalleryImage.model_validate(image)

    except SQLAlchemyError as e:
        logger.error(f"Error updating image {image_id}: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to update image {image_id}", "detail": str(e)}
        )


@router.delete("/gallery/{image_id}", response_model=SuccessResponse)
async def delete_gallery_image(
    image_id: str,
    db: AsyncSession = Depends(get_db),
    authenticated: bool = Depends(require_admin)
):
    """
    Delete an image record, then its Cloudinary asset.

    The database record is authoritative: it is removed even if the storage
    delete fails, in which case the failure is only logged.

    Raises:
        HTTPException: 404 if image not found, 500 if the database delete fails
    """
    image = await _get_image_or_404(db, image_id)
    src = image.src

    try:
        await db.delete(image)
        await db.commit()
        logger.info(f"Deleted image from database: ID {image_id}")
    except SQLAlchemyError as e:
        logger.error(f"Error deleting image {image_id}: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": f"Failed to delete image {image_id}", "detail": str(e)}
        )

    await _delete_from_storage(image_id, src)
    return SuccessResponse()


async def _delete_from_storage(image_id: str, src: str) -> None:
    """Best-effort removal of the binary behind `src`."""
    try:
        public_id = extract_public_id_from_url(src)
    except ValueError as e:
        logger.warning(f"Skipping storage delete for image {image_id}: {str(e)}")
        return

    try:
        await delete_image(public_id)
    except Exception as e:
        logger.error(
            f"Failed to delete image {image_id} from storage (public_id: {public_id}): {str(e)}",
            exc_info=True
        )
