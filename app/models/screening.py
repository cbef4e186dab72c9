import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base


class Screening(Base):
    """Score of one candidate against one role. One row per pair, overwritten on re-screening."""

    __tablename__ = "screenings"
    __table_args__ = (UniqueConstraint("role_id", "candidate_id", name="uq_screening_role_candidate"),)

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    role_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("roles.id", ondelete="CASCADE")
    )
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("candidates.id", ondelete="CASCADE"), index=True
    )
    score_total: Mapped[float] = mapped_column(Float)
    score_breakdown: Mapped[dict] = mapped_column(JSONB, default=dict)
    must_haves_satisfied: Mapped[list] = mapped_column(JSONB, default=list)
    missing_must_haves: Mapped[list] = mapped_column(JSONB, default=list)
    knockout: Mapped[bool] = mapped_column(Boolean, default=False)
    reasons: Mapped[str] = mapped_column(Text, default="")
    flags: Mapped[dict] = mapped_column(JSONB, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    role = relationship("Role", back_populates="screenings")
    candidate = relationship("Candidate", back_populates="screenings")
