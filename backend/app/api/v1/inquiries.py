"""
Inquiry (lead) endpoints with follow-up tracking.
"""
import logging
from typing import Optional
from math import ceil
from fastapi import APIRouter, Depends, status, Query
from fastapi.encoders import jsonable_encoder
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, or_

from app.db.base import get_db
from app.core.deps import require_admin, actor_from_user
from app.core.exceptions import NotFoundError, ValidationError
from app.models.user import User
from app.models.inquiry import FollowUpStatus, Inquiry, InquiryStatus
from app.schemas.common import SuccessResponse
from app.schemas.inquiry import (
    InquiryCreate, InquiryUpdate, InquiryResponse, InquiryEnvelope, InquiryListResponse
)
from app.services.billing.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()

UPDATABLE_FIELDS = (
    "name",
    "phone",
    "email",
    "source",
    "status",
    "next_follow_up_date",
    "last_contacted_at",
    "note",
)
REQUIRED_FIELDS = ("name", "phone", "status")


def inquiry_to_response(inquiry: Inquiry) -> InquiryResponse:
    """Convert Inquiry model to InquiryResponse schema."""
    return InquiryResponse(
        id=inquiry.id,
        name=inquiry.name,
        phone=inquiry.phone,
        email=inquiry.email,
        source=inquiry.source,
        status=inquiry.status,
        next_follow_up_date=inquiry.next_follow_up_date,
        last_contacted_at=inquiry.last_contacted_at,
        note=inquiry.note,
        follow_ups=inquiry.follow_ups or [],
        created_by_id=inquiry.created_by_id,
        created_by_name=inquiry.created_by_name,
        updated_by_id=inquiry.updated_by_id,
        updated_by_name=inquiry.updated_by_name,
        created=inquiry.created,
        updated=inquiry.updated,
    )


async def get_inquiry_or_404(db: AsyncSession, inquiry_id: str) -> Inquiry:
    result = await db.execute(select(Inquiry).where(Inquiry.id == inquiry_id))
    inquiry = result.scalar_one_or_none()
    if inquiry is None:
        raise NotFoundError("Inquiry not found")
    return inquiry


@router.get("", response_model=InquiryListResponse)
async def list_inquiries(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status_filter: Optional[str] = Query(None, alias="status"),
    search: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """List inquiries, newest first."""
    query = select(Inquiry)

    if status_filter:
        try:
            query = query.where(Inquiry.status == InquiryStatus(status_filter))
        except ValueError:
            allowed = ", ".join(s.value for s in InquiryStatus)
            raise ValidationError(f"Invalid status '{status_filter}'. Allowed values: {allowed}")

    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            Inquiry.name.ilike(pattern),
            Inquiry.phone.ilike(pattern),
            Inquiry.email.ilike(pattern),
            Inquiry.source.ilike(pattern),
        ))

    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total_items = total_result.scalar() or 0

    query = query.order_by(Inquiry.created.desc(), Inquiry.id.desc())
    query = query.offset((page - 1) * limit).limit(limit)
    result = await db.execute(query)
    inquiries = result.scalars().all()

    return InquiryListResponse(
        page=page,
        limit=limit,
        totalItems=total_items,
        totalPages=ceil(total_items / limit) if total_items > 0 else 1,
        items=[inquiry_to_response(i) for i in inquiries],
    )


@router.post("", response_model=InquiryEnvelope, status_code=status.HTTP_201_CREATED)
async def create_inquiry(
    inquiry_data: InquiryCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Record a new inquiry."""
    actor = actor_from_user(current_user)
    inquiry = Inquiry(
        name=inquiry_data.name,
        phone=inquiry_data.phone,
        email=inquiry_data.email,
        source=inquiry_data.source,
        status=inquiry_data.status,
        next_follow_up_date=inquiry_data.next_follow_up_date,
        note=inquiry_data.note,
        follow_ups=[],
        created_by_id=actor.id,
        created_by_name=actor.name,
        updated_by_id=actor.id,
        updated_by_name=actor.name,
    )
    db.add(inquiry)
    await db.flush()
    logger.info("Inquiry %s created", inquiry.id)
    return InquiryEnvelope(message="Inquiry created", inquiry=inquiry_to_response(inquiry))


@router.put("/{inquiry_id}", response_model=InquiryEnvelope)
async def update_inquiry(
    inquiry_id: str,
    inquiry_data: InquiryUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """
    Update an inquiry.

    An optional follow_up is appended to the follow-up list; a Done
    follow-up also stamps last_contacted_at.
    """
    inquiry = await get_inquiry_or_404(db, inquiry_id)
    update_data = inquiry_data.model_dump(exclude_unset=True)
    actor = actor_from_user(current_user)
    now = utcnow()

    for field_name in REQUIRED_FIELDS:
        if field_name in update_data and update_data[field_name] is None:
            raise ValidationError(f"{field_name} cannot be empty")

    for field_name in UPDATABLE_FIELDS:
        if field_name in update_data:
            setattr(inquiry, field_name, update_data[field_name])

    if inquiry_data.follow_up is not None:
        follow_up = inquiry_data.follow_up
        record = jsonable_encoder({
            "date": follow_up.date,
            "note": follow_up.note,
            "status": follow_up.status,
            "by": actor.as_dict(),
            "created_at": now,
        })
        inquiry.follow_ups = [*(inquiry.follow_ups or []), record]
        if follow_up.status == FollowUpStatus.DONE and "last_contacted_at" not in update_data:
            inquiry.last_contacted_at = now

    inquiry.updated_by_id = actor.id
    inquiry.updated_by_name = actor.name
    await db.flush()
    return InquiryEnvelope(message="Inquiry updated", inquiry=inquiry_to_response(inquiry))


@router.delete("/{inquiry_id}", response_model=SuccessResponse)
async def delete_inquiry(
    inquiry_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Delete an inquiry."""
    inquiry = await get_inquiry_or_404(db, inquiry_id)
    await db.delete(inquiry)
    await db.flush()
    return SuccessResponse(message="Inquiry deleted")
