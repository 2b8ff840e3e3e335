from sqlalchemy import Column, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from metricpoints.core.clock import utc_now_naive
from metricpoints.db.base import Base


class Metric(Base):
    __tablename__ = "metrics"

    CALC_SUM = 0
    CALC_AVG = 1

    VIEW_LAST_HOUR = 0
    VIEW_TODAY = 1
    VIEW_WEEK = 2
    VIEW_MONTH = 3

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    suffix = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    # aggregation config, read fresh on every points query
    calc_type = Column(Integer, nullable=True, default=CALC_SUM)
    default_value = Column(Numeric(15, 3), nullable=False, default=0)
    places = Column(Integer, nullable=False, default=2)
    default_view = Column(Integer, nullable=False, default=VIEW_TODAY)

    created_at = Column(DateTime, nullable=False, default=utc_now_naive)
    updated_at = Column(DateTime, nullable=False, default=utc_now_naive, onupdate=utc_now_naive)

    points = relationship(
        "MetricPoint",
        back_populates="metric",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
