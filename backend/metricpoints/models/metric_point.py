from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, Numeric
from sqlalchemy.orm import relationship

from metricpoints.core.clock import utc_now_naive
from metricpoints.db.base import Base


class MetricPoint(Base):
    """Raw sample. Append-only; created_at is naive UTC."""

    __tablename__ = "metric_points"

    id = Column(Integer, primary_key=True)
    metric_id = Column(Integer, ForeignKey("metrics.id", ondelete="CASCADE"), nullable=False)
    value = Column(Numeric(15, 3), nullable=False)
    counter = Column(Numeric(15, 3), nullable=False, default=1)
    created_at = Column(DateTime, nullable=False, default=utc_now_naive)

    metric = relationship("Metric", back_populates="points")

    __table_args__ = (
        Index("ix_metric_points_metric_created", "metric_id", "created_at"),
    )
