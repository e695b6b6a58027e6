from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func


class Commission(Base):
    """Commission earned by an agent on one booking.

    ``rate_snapshot`` freezes the agent's rate at computation time so
    later rate changes never alter historical amounts.  ``booking_id`` is
    unique: the calculator inserts with ``ON CONFLICT DO NOTHING``.
    """

    __tablename__ = "commissions"
    commission_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    agent_id = Column(
        UUID(as_uuid=True),
        ForeignKey("agents.agent_id", ondelete="CASCADE"),
        nullable=False,
    )
    booking_id = Column(
        UUID(as_uuid=True),
        ForeignKey("bookings.booking_id", ondelete="CASCADE"),
        nullable=False,
    )
    amount = Column(Numeric(15, 2), nullable=False)
    rate_snapshot = Column(Numeric(5, 2), nullable=False)
    status = Column(String(20), nullable=False, server_default="PENDING")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    agent = relationship("Agent", back_populates="commissions")
    booking = relationship("Booking")

    __table_args__ = (UniqueConstraint("booking_id", name="uq_commission_booking"),)
