"""Royalty statement and line item models."""
from datetime import datetime
from decimal import Decimal
from uuid import uuid4
from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from podslice.database import Base


STATUS_PENDING = "pending"
STATUS_PROCESSING = "processing"
STATUS_PAID = "paid"
STATUS_FAILED = "failed"


class RoyaltyStatement(Base):
    """Royalty record for one calendar-month period of an organization.

    Payment lifecycle: pending -> processing -> paid, with failures landing in
    ``failed``. Recalculating a failed statement puts it back to pending.
    """

    __tablename__ = "royalty_statements"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    organization_id: Mapped[str] = mapped_column(String(36), ForeignKey("organizations.uuid"), nullable=False)
    period_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    total_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_shares: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    calculated_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    payment_status: Mapped[str] = mapped_column(String(20), default=STATUS_PENDING, nullable=False)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    external_transaction_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    organization: Mapped["Organization"] = relationship("Organization", foreign_keys=[organization_id])
    line_items: Mapped[list["RoyaltyLineItem"]] = relationship(
        "RoyaltyLineItem", back_populates="statement", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint(
            "organization_id", "period_start", "period_end",
            name="uq_royalty_statements_organization_period",
        ),
        Index("idx_royalty_statement_payment_status", "payment_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<RoyaltyStatement(uuid={self.uuid}, organization_id={self.organization_id}, "
            f"amount={self.calculated_amount}, status={self.payment_status})>"
        )


class RoyaltyLineItem(Base):
    """Per-summary breakdown of a statement."""

    __tablename__ = "royalty_line_items"

    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))
    statement_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("royalty_statements.uuid", ondelete="CASCADE"), nullable=False
    )
    summary_id: Mapped[str] = mapped_column(String(36), ForeignKey("summaries.uuid", ondelete="CASCADE"), nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    shares: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    statement: Mapped["RoyaltyStatement"] = relationship("RoyaltyStatement", back_populates="line_items")

    __table_args__ = (
        Index("idx_royalty_line_item_statement_id", "statement_id"),
    )

    def __repr__(self) -> str:
        return f"<RoyaltyLineItem(statement_id={self.statement_id}, summary_id={self.summary_id}, amount={self.amount})>"
