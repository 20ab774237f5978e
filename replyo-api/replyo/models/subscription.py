import uuid
from enum import Enum

from sqlalchemy import Column, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from replyo.database import Base


class SubscriptionStatus(str, Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    CANCELLED = "CANCELLED"
    PAST_DUE = "PAST_DUE"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    stripe_customer_id = Column(Text, nullable=False, unique=True)
    stripe_subscription_id = Column(Text, unique=True)
    email = Column(Text)
    plan = Column(Text)
    status = Column(Text, nullable=False, default=SubscriptionStatus.PENDING.value)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    businesses = relationship("BusinessProfile", back_populates="subscription")
    instagram_pages = relationship("InstagramPage", back_populates="subscription")
