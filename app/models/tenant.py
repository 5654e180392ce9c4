import enum
from sqlalchemy import Column, String, DateTime, Enum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from .base import Base, generate_uuid


class TenantStatus(str, enum.Enum):
    ACTIVE = "active"
    TRIAL = "trial"
    SUSPENDED = "suspended"


class Tenant(Base):
    """One school account. Every school-owned row is scoped by tenant_id."""
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    status = Column(Enum(TenantStatus), nullable=False, default=TenantStatus.TRIAL)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    profiles = relationship("Profile", back_populates="tenant")
