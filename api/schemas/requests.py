"""
Pydantic schemas for outpass and complaint endpoints.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class OutpassCreate(BaseModel):
    """Request model for an outpass. Naive times are read in the portal timezone."""

    destination: str
    from_date: datetime
    to_date: datetime
    reason: str
    parent_contact: str


class ComplaintCreate(BaseModel):
    """Request model for creating or editing a complaint."""

    title: str
    description: str
    category: str
    urgency: str | None = None


class StatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class CreateRequestResponse(BaseModel):
    success: bool
    id: str
