import uuid

from sqlalchemy import Column, Float, ForeignKey, Text
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from replyo.database import Base


class BusinessProfile(Base):
    __tablename__ = "business_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    ig_username = Column(Text, nullable=False, unique=True)
    business_name = Column(Text, nullable=False)
    booking_link = Column(Text)
    industry = Column(Text)  # beauty, hair, fitness, cleaning, plumbing, electrical, detailing
    email = Column(Text)
    phone = Column(Text)
    location = Column(Text)
    hours = Column(Text)
    tone = Column(Text)
    avg_order_value = Column(Float)
    conversion_multiplier = Column(Float)
    instagram_account_id = Column(Text, index=True)
    instagram_access_token = Column(Text)
    subscription_id = Column(UUID(as_uuid=True), ForeignKey("subscriptions.id"), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    subscription = relationship("Subscription", back_populates="businesses")
    conversations = relationship("Conversation", back_populates="business")
    installations = relationship("Installation", back_populates="business")
