import uuid
from enum import Enum

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from replyo.database import Base


class InstallationStatus(str, Enum):
    PENDING = "PENDING"
    INSTALLED = "INSTALLED"
    MANUAL_REQUIRED = "MANUAL_REQUIRED"
    FAILED = "FAILED"


class Installation(Base):
    __tablename__ = "installations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(UUID(as_uuid=True), ForeignKey("business_profiles.id"), nullable=False, index=True)
    status = Column(Text, nullable=False, default=InstallationStatus.PENDING.value)
    webhook_verified = Column(Boolean, nullable=False, default=False)
    manual_required = Column(Boolean, nullable=False, default=False)
    disabled = Column(Boolean, nullable=False, default=False)
    disabled_reason = Column(Text)
    onboarding_emails_sent = Column(Integer, nullable=False, default=0)
    installed_at = Column(TIMESTAMP(timezone=True))
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    business = relationship("BusinessProfile", back_populates="installations")
