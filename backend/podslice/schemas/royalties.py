"""Schemas for royalty statements and payouts."""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field, field_serializer


class CalculateRoyaltiesRequest(BaseModel):
    organization_id: str
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)


class LineItemResponse(BaseModel):
    uuid: str
    summary_id: str
    views: int
    shares: int
    amount: Decimal

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> str:
        return f"{amount:.2f}"

    class Config:
        from_attributes = True


class StatementResponse(BaseModel):
    """One royalty statement; amounts are 2-decimal strings."""

    uuid: str
    organization_id: str
    period_start: datetime
    period_end: datetime
    total_views: int
    total_shares: int
    calculated_amount: Decimal
    payment_status: str
    paid_at: Optional[datetime] = None
    external_transaction_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @field_serializer("calculated_amount")
    def serialize_amount(self, amount: Decimal) -> str:
        return f"{amount:.2f}"

    class Config:
        from_attributes = True


class StatementDetailResponse(StatementResponse):
    line_items: List[LineItemResponse] = []


class StatementListResponse(BaseModel):
    statements: List[StatementResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class PayoutDetails(BaseModel):
    transaction_id: str
    status: str
    amount: Decimal
    currency: str

    @field_serializer("amount")
    def serialize_amount(self, amount: Decimal) -> str:
        return f"{amount:.2f}"


class PayoutResponse(BaseModel):
    success: bool = True
    royalty: StatementResponse
    payout: PayoutDetails
