import uuid

from sqlalchemy import Column, Float, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import TIMESTAMP, UUID
from sqlalchemy.sql import func

from replyo.database import Base


class AggregatedStats(Base):
    __tablename__ = "aggregated_stats"
    __table_args__ = (
        UniqueConstraint("business_id", "period_start", "period_end", name="uq_aggregated_stats_period"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    business_id = Column(UUID(as_uuid=True), ForeignKey("business_profiles.id"), nullable=False)
    period_start = Column(TIMESTAMP(timezone=True), nullable=False)
    period_end = Column(TIMESTAMP(timezone=True), nullable=False)
    total_conversations = Column(Integer, nullable=False, default=0)
    qualified_leads = Column(Integer, nullable=False, default=0)
    booking_clicks = Column(Integer, nullable=False, default=0)
    top_service = Column(Text)
    avg_response_time_minutes = Column(Float)
    conversion_rate = Column(Float, nullable=False, default=0)
    estimated_revenue = Column(Float, nullable=False, default=0)
    revenue_confidence = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
