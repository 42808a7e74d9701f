"""Organization model: the tenant that owns podcasts, content and royalty statements."""
from datetime import datetime
from uuid import uuid4
from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from podslice.database import Base


# Payout profile states, mirrored from the provider's payee status
PAYOUT_NOT_CONFIGURED = "NOT_CONFIGURED"
PAYOUT_PENDING = "PENDING"
PAYOUT_ACTIVE = "ACTIVE"
PAYOUT_FAILED = "FAILED"

TAX_FORM_NONE = "NONE"
TAX_FORM_SUBMITTED = "SUBMITTED"


class Organization(Base):
    """Organization with its embedded payout profile.

    ``payoneer_payee_id``, ``payout_status`` and ``tax_form_status`` together
    gate royalty payouts: all three must be satisfied before money moves.
    """

    __tablename__ = "organizations"

    # Primary key
    uuid: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # Organization info
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    # Payout profile
    payoneer_payee_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payout_status: Mapped[str] = mapped_column(String(50), default=PAYOUT_NOT_CONFIGURED, nullable=False)
    tax_form_status: Mapped[str] = mapped_column(String(50), default=TAX_FORM_NONE, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def payouts_enabled(self) -> bool:
        return (
            bool(self.payoneer_payee_id)
            and self.tax_form_status == TAX_FORM_SUBMITTED
            and self.payout_status == PAYOUT_ACTIVE
        )

    def __repr__(self) -> str:
        return f"<Organization(uuid={self.uuid}, slug={self.slug}, payout_status={self.payout_status})>"
