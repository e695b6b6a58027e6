from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func


class User(Base):
    """Registered account, reduced to what commission attribution reads.

    Account management lives in the surrounding platform; the lead
    engine only needs the e-mail address to match leads captured
    before the account existed.
    """

    __tablename__ = "users"
    user_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    tenant_id = Column(UUID(as_uuid=True), index=True)
    email = Column(String(255), unique=True, nullable=False)
    name = Column(String(200))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    leads = relationship("Lead", back_populates="user")
    bookings = relationship("Booking", back_populates="user")
