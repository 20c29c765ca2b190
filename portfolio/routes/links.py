"""
Navigation link routes.
GET /links is public; create, update, delete and reorder require the admin bearer token.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, func
from typing import List
import logging

from portfolio.database import get_db
from portfolio.models import Link as LinkRow
from portfolio.schemas import Link, LinkCreate, LinkReorderRequest, LinkUpdate, SuccessResponse
from portfolio.utils.auth import require_admin

logger = logging.getLogger(__name__)

router = APIRouter()


async def _get_link_or_404(db: AsyncSession, link_id: int) -> LinkRow:
    result = await db.execute(select(LinkRow).where(LinkRow.id == link_id))
    link = result.scalar_one_or_none()
    if not link:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "Link not found", "detail": f"Link ID {link_id} does not exist"}
        )
    return link


@router.get("/links", response_model=List[Link])
async def get_links(db: AsyncSession = Depends(get_db)):
    """Get all links ordered by position."""
    try:
        result = await db.execute(select(LinkRow).order_by(LinkRow.order.asc(), LinkRow.id.asc()))
        links = result.scalars().all()
        logger.info(f"Retrieved {len(links)} links")
        return [Link.model_validate(link) for link in links]

    except SQLAlchemyError as e:
        logger.error(f"Error fetching links: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to fetch links", "detail": str(e)}
        )


# Must be registered before /links/{link_id}
@router.put("/links/reorder", response_model=SuccessResponse)
async def reorder_links(
    request: LinkReorderRequest,
    db: AsyncSession = Depends(get_db),
    authenticated: bool = Depends(require_admin)
):
    """
    Rewrite link order from list position (order = index + 1) in one transaction.

    Raises:
        HTTPException: 404 if any link ID is unknown, 500 if the update fails
    """
    link_ids = [link.id for link in request.links]

    try:
        result = await db.execute(select(LinkRow).where(LinkRow.id.in_(link_ids)))
        by_id = {link.id: link for link in result.scalars().all()}

        missing_ids = [link_id for link_id in link_ids if link_id not in by_id]
        if missing_ids:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail={"error": "Links not found", "detail": f"Link IDs not found: {missing_ids}"}
            )

        for index, link_id in enumerate(link_ids):
            by_id[link_id].order = index + 1

        await db.commit()

        logger.info(f"Reordered {len(link_ids)} links")
        return SuccessResponse()

    except HTTPException:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Error reordering links: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to reorder links", "detail": str(e)}
        )


@router.post("/links", response_model=Link, status_code=status.HTTP_201_CREATED)
async def create_link(
    payload: LinkCreate,
    db: AsyncSession = Depends(get_db),
    authenticated: bool = Depends(require_admin)
):
    """Append a new link after the current last one."""
    try:
        result = await db.execute(select(func.max(LinkRow.order)))
        max_order = result.scalar()

        link = LinkRow(
            text=payload.text,
            url=payload.url,
            order=1 if max_order is None else max_order + 1,
        )
        db.add(link)
        await db.commit()
        await db.refresh(link)

        logger.info(f"Created link {link.id} at order {link.order}")
        return Link.model_validate(link)

    except SQLAlchemyError as e:
        logger.error(f"Error creating link: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to create link", "detail": str(e)}
        )


@router.put("/links/{link_id}", response_model=Link)
async def update_link(
    link_id: int,
    payload: LinkUpdate,
    db: AsyncSession = Depends(get_db),
    authenticated: bool = Depends(require_admin)
):
    """Change a link's text and url; its position is untouched."""
    link = await _get_link_or_404(db, link_id)

    try:
        link.text = payload.text
        link.url = payload.url
        await db.commit()
        await db.refresh(link)

        logger.info(f"Updated link {link_id}")
        return Link.model_validate(link)

    except SQLAlchemyError as e:
        logger.error(f"Error updating link {link_id}: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to update link", "detail": str(e)}
        )


@router.delete("/links/{link_id}", response_model=SuccessResponse)
async def delete_link(
    link_id: int,
    db: AsyncSession = Depends(get_db),
    authenticated: bool = Depends(require_admin)
):
    link = await _get_link_or_404(db, link_id)

    try:
        await db.delete(link)
        await db.commit()

        logger.info(f"Deleted link {link_id}")
        return SuccessResponse()

    except SQLAlchemyError as e:
        logger.error(f"Error deleting link {link_id}: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to delete link", "detail": str(e)}
        )
