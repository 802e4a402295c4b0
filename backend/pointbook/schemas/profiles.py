# backend/pointbook/schemas/profiles.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .reservations import ReservationRead


class ProfileCreate(BaseModel):
    display_name: Optional[str] = None


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = None


class ProfileRead(BaseModel):
    id: int
    display_name: Optional[str] = None
    current_points: int
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class AdminProfileRead(ProfileRead):
    """Profile as seen on the admin dashboard"""
    admin_notes: Optional[str] = None
    is_admin: bool


class AdminNotesUpdate(BaseModel):
    admin_id: int
    admin_notes: Optional[str] = None


class LedgerEntryRead(BaseModel):
    """Point history item"""
    id: int
    user_id: int
    amount: int
    entry_type: str  # booking, refund, charge, admin_credit, admin_cancel
    description: Optional[str] = None
    reservation_id: Optional[int] = None
    created_by: Optional[int] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberDetail(BaseModel):
    """Response for GET /admin/profiles/{id}"""
    profile: AdminProfileRead
    reservations: list[ReservationRead]
    ledger: list[LedgerEntryRead]
    visit_count: int
    ledger_total: int
    balance_consistent: bool


# ──────────────────────────────────────────────────────────────────────────────
# Point operations
# ──────────────────────────────────────────────────────────────────────────────

class PointCharge(BaseModel):
    """Request body for POST /profiles/{id}/charge (simulated purchase)"""
    amount: int = Field(..., gt=0, description="Points to add (must be > 0)")


class PointCredit(BaseModel):
    """Request body for POST /admin/profiles/{id}/credit"""
    admin_id: int
    amount: int = Field(..., description="Points to add or remove (non-zero)")
    description: Optional[str] = None


class PointOperationResponse(BaseModel):
    """Response after any point operation"""
    success: bool
    user_id: int
    new_balance: int
    entry_id: int
    message: Optional[str] = None
