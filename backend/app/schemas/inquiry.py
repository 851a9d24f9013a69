"""
Pydantic schemas for Inquiry (lead) endpoints.
"""
from typing import List, Optional
from datetime import date as date_type, datetime
from pydantic import BaseModel, Field, EmailStr

from app.models.inquiry import FollowUpStatus, InquiryStatus
from app.schemas.common import PaginatedResponse, SuccessResponse


class FollowUpCreate(BaseModel):
    """A follow-up appended to an inquiry."""
    date: date_type
    note: Optional[str] = None
    status: FollowUpStatus = FollowUpStatus.PLANNED


class InquiryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    source: Optional[str] = Field(None, max_length=100)
    status: InquiryStatus = InquiryStatus.NEW
    next_follow_up_date: Optional[date_type] = None
    note: Optional[str] = None


class InquiryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    source: Optional[str] = Field(None, max_length=100)
    status: Optional[InquiryStatus] = None
    next_follow_up_date: Optional[date_type] = None
    last_contacted_at: Optional[datetime] = None
    note: Optional[str] = None
    follow_up: Optional[FollowUpCreate] = None


class InquiryResponse(BaseModel):
    id: str
    name: str
    phone: str
    email: Optional[str] = None
    source: Optional[str] = None
    status: InquiryStatus
    next_follow_up_date: Optional[date_type] = None
    last_contacted_at: Optional[datetime] = None
    note: Optional[str] = None
    follow_ups: List[dict] = []
    created_by_id: Optional[str] = None
    created_by_name: Optional[str] = None
    updated_by_id: Optional[str] = None
    updated_by_name: Optional[str] = None
    created: datetime
    updated: datetime

    class Config:
        from_attributes = True


class InquiryEnvelope(SuccessResponse):
    inquiry: InquiryResponse


class InquiryListResponse(PaginatedResponse):
    items: List[InquiryResponse]
