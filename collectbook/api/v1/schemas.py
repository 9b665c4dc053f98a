"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field, UUID4
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from collectbook.domain.models import AdjustmentKind


class AccrualResponse(BaseModel):
    """Response for POST /v1/jobs/accrue-savings"""

    ok: bool = True
    inserted_accrual_rows: int
    updated_members: int
    took_ms: float


class WeekendAdjustmentsResponse(BaseModel):
    """Per-ledger row counts for the weekend backfill endpoints"""

    balance: int
    savings: int


class AdjustmentRequest(BaseModel):
    """Request body for POST /v1/adjustments"""

    member_id: UUID4
    kind: AdjustmentKind
    amount: Decimal = Field(..., gt=0, description="Positive amount, 2 decimal places")
    effective_date: Optional[date] = Field(None, description="Attribute the entry to this date instead of today")
    days_count: Optional[int] = Field(None, ge=0, description="Collection days override (BALANCE_DEDUCT only)")


class AdjustmentSchema(BaseModel):
    """Single ledger row"""

    adjustment_id: str
    member_id: str
    kind: AdjustmentKind
    amount: Decimal
    before: Decimal
    after: Decimal
    created_at: datetime
    encoded_by: Optional[str] = None


class AdjustmentResponse(BaseModel):
    """Response for POST /v1/adjustments"""

    adjustment: AdjustmentSchema
    days_count: int
    warnings: List[str] = []


class AdjustmentPage(BaseModel):
    """Response for GET /v1/adjustments/{ledger}"""

    items: List[AdjustmentSchema]
    total: int
    page: int
    total_pages: int


class ReversalResponse(BaseModel):
    success: bool = True
    adjustment_id: str


class CollectionEntrySchema(BaseModel):
    """One row of the collection sheet"""

    member_id: UUID4
    balance_deduct: Decimal = Field(Decimal("0"), ge=0)
    savings_increase: Decimal = Field(Decimal("0"), ge=0)
    days_count: Optional[int] = Field(None, ge=0)


class BulkUpdateRequest(BaseModel):
    """Request body for POST /v1/members/bulk-update"""

    updates: List[CollectionEntrySchema]


class EntryErrorSchema(BaseModel):
    member_id: str
    type: str
    message: str


class EntryWarningSchema(BaseModel):
    member_id: str
    message: str


class BulkUpdateResponse(BaseModel):
    success: bool
    errors: List[EntryErrorSchema]
    warnings: List[EntryWarningSchema]


class MemberCreateRequest(BaseModel):
    """Request body for POST /v1/members"""

    first_name: str = Field(..., min_length=1)
    last_name: str = ""
    balance: Decimal
    savings: Decimal = Field(Decimal("0.00"), ge=0)


class MemberResponse(BaseModel):
    member_id: str
    first_name: str
    last_name: str
    balance: Decimal
    savings: Decimal
    days_count: int
    savings_last_accrued_at: Optional[date]
    created_at: datetime
