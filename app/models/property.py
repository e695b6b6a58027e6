from sqlalchemy import Column, String, Numeric, DateTime, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.base import Base
from sqlalchemy.sql import func


class Property(Base):
    """Listed building or development a lead can be matched against."""

    __tablename__ = "properties"
    property_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    tenant_id = Column(UUID(as_uuid=True), nullable=False)
    title = Column(String(255), nullable=False)
    city = Column(String(100))
    property_type = Column(String(50))
    status = Column(String(10), nullable=False, server_default="ACTIVE")
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    units = relationship(
        "Unit", back_populates="property", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_properties_tenant_status", "tenant_id", "status"),
    )


class Unit(Base):
    """Bookable unit inside a property; ``ACTIVE`` means available."""

    __tablename__ = "units"
    unit_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    property_id = Column(
        UUID(as_uuid=True),
        ForeignKey("properties.property_id", ondelete="CASCADE"),
        nullable=False,
    )
    unit_code = Column(String(50))
    unit_category = Column(String(50))
    status = Column(String(10), nullable=False, server_default="ACTIVE")

    property = relationship("Property", back_populates="units")
    pricing = relationship(
        "UnitPricing",
        back_populates="unit",
        cascade="all, delete-orphan",
        order_by="UnitPricing.price",
    )


class UnitPricing(Base):
    """One price point for a unit (a unit may carry several plans)."""

    __tablename__ = "unit_pricing"
    pricing_id = Column(
        UUID(as_uuid=True), primary_key=True, server_default=func.gen_random_uuid()
    )
    unit_id = Column(
        UUID(as_uuid=True),
        ForeignKey("units.unit_id", ondelete="CASCADE"),
        nullable=False,
    )
    price = Column(Numeric(15, 2), nullable=False)
    plan = Column(String(50))

    unit = relationship("Unit", back_populates="pricing")
