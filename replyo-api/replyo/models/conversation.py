import uuid

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from replyo.database import Base


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(UUID(as_uuid=True), ForeignKey("business_profiles.id"), nullable=False, index=True)
    user_id = Column(Text, nullable=False)  # Instagram-scoped sender id
    state = Column(Text, nullable=False, default="START")
    industry = Column(Text)
    lead_service = Column(Text)
    lead_urgency = Column(Text)  # emergency, today, this_week, planning
    lead_intent = Column(Text)  # first_time, returning, comparison
    lead_data = Column(JSONB, nullable=False, default=dict)
    is_qualified = Column(Boolean, nullable=False, default=False)
    has_booked = Column(Boolean, nullable=False, default=False)
    follow_up_count = Column(Integer, nullable=False, default=0)
    next_follow_up_at = Column(TIMESTAMP(timezone=True))
    last_follow_up_at = Column(TIMESTAMP(timezone=True))
    last_message_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    business = relationship("BusinessProfile", back_populates="conversations")
    messages = relationship("ConversationMessage", back_populates="conversation")
