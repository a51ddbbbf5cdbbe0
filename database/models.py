"""
Database ORM Models - CCPI Run History.

============================================================
RUN HISTORY SCHEMA
============================================================

One row per completed aggregation run:
- Headline numbers as columns (queryable, indexable)
- Pillar scores and the full snapshot as JSON
- Timestamps stored as UTC

============================================================
"""

from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    Column, Integer, String, Float, Boolean,
    DateTime, JSON, Index,
)

from .engine import Base


# =============================================================
# HELPER FUNCTIONS
# =============================================================

def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================
# CCPI RUNS TABLE
# =============================================================

class CCPIRunRecord(Base):
    """
    Result of one CCPI aggregation run.

    Source: ccpi.engine
    Update Frequency: Per run
    """
    __tablename__ = "ccpi_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    run_id = Column(String(36), nullable=False, default=generate_uuid, unique=True)

    # Run time
    timestamp = Column(DateTime(timezone=True), nullable=False, index=True)

    # Composite
    ccpi_score = Column(Float, nullable=False)
    confidence = Column(Float, nullable=False)
    risk_band = Column(String(20), nullable=False)

    # Canaries
    alert_level = Column(String(20), nullable=False)
    canary_count = Column(Integer, nullable=False, default=0)
    canary_high = Column(Integer, nullable=False, default=0)
    canary_medium = Column(Integer, nullable=False, default=0)
    canary_low = Column(Integer, nullable=False, default=0)

    # Data health
    live_count = Column(Integer, nullable=False, default=0)
    indicator_count = Column(Integer, nullable=False, default=0)
    excluded_pillars = Column(JSON, nullable=True)  # List of pillar names
    run_timed_out = Column(Boolean, nullable=False, default=False)
    duration_ms = Column(Float, nullable=True)

    # Detail
    pillar_scores = Column(JSON, nullable=False)  # {pillar: score}
    snapshot = Column(JSON, nullable=False)  # Full CCPISnapshot.to_dict()

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_ccpi_runs_band_time", "risk_band", "timestamp"),
    )

    def to_dict(self) -> dict:
        return {
            "run_id": self.run_id,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "ccpi_score": self.ccpi_score,
            "confidence": self.confidence,
            "risk_band": self.risk_band,
            "alert_level": self.alert_level,
            "canary_count": self.canary_count,
            "live_count": self.live_count,
            "indicator_count": self.indicator_count,
            "excluded_pillars": list(self.excluded_pillars or []),
            "run_timed_out": self.run_timed_out,
            "pillar_scores": dict(self.pillar_scores or {}),
        }
