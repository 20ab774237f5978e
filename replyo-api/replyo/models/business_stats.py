import uuid

from sqlalchemy import Column, Date, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.sql import func

from replyo.database import Base


class BusinessStats(Base):
    """One row per business per UTC day."""

    __tablename__ = "business_stats"
    __table_args__ = (UniqueConstraint("business_id", "date", name="uq_business_stats_day"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(UUID(as_uuid=True), ForeignKey("business_profiles.id"), nullable=False)
    date = Column(Date, nullable=False)
    total_conversations = Column(Integer, nullable=False, default=0)
    qualified_leads = Column(Integer, nullable=False, default=0)
    booking_clicks = Column(Integer, nullable=False, default=0)
    most_requested_service = Column(Text)
    response_rate = Column(Float, nullable=False, default=0)
    conversion_rate = Column(Float, nullable=False, default=0)
    updated_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
