"""
Database Persistence Functions.

============================================================
CCPI RUN PERSISTENCE
============================================================

Every function:
- Works inside a caller-provided session
- Logs structured output: "Persist table_name: inserted=N"
- Raises DatabasePersistenceError on failure

============================================================
"""

import logging
from datetime import timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from ccpi.types import CCPISnapshot

from .models import CCPIRunRecord
from .engine import DatabasePersistenceError, PersistenceValidationError

logger = logging.getLogger(__name__)

MAX_HISTORY_LIMIT = 500


# =============================================================
# HELPER FUNCTIONS
# =============================================================

def _log_persistence(table_name: str, count: int, details: str = "") -> None:
    """Log persistence result in structured format."""
    if details:
        logger.info(f"Persist {table_name}: inserted={count} ({details})")
    else:
        logger.info(f"Persist {table_name}: inserted={count}")


def _as_utc(record: CCPIRunRecord) -> CCPIRunRecord:
    # SQLite drops tzinfo on read
    if record.timestamp is not None and record.timestamp.tzinfo is None:
        record.timestamp = record.timestamp.replace(tzinfo=timezone.utc)
    return record


# =============================================================
# CCPI RUNS
# =============================================================

def persist_snapshot(session: Session, snapshot: CCPISnapshot) -> CCPIRunRecord:
    """
    Persist one run.

    Args:
        session: Database session
        snapshot: Completed run

    Returns:
        The flushed record

    Raises:
        PersistenceValidationError if the snapshot has no timestamp
        DatabasePersistenceError on failure
    """
    result = snapshot.result
    if result.timestamp is None:
        raise PersistenceValidationError("Snapshot has no timestamp")

    try:
        record = CCPIRunRecord(
            timestamp=result.timestamp,
            ccpi_score=result.ccpi_score,
            confidence=result.confidence,
            risk_band=result.risk_band.value,
            alert_level=result.alert_level.value,
            canary_count=result.canary_count,
            canary_high=snapshot.canaries.high,
            canary_medium=snapshot.canaries.medium,
            canary_low=snapshot.canaries.low,
            live_count=sum(1 for i in snapshot.indicators if i.is_live),
            indicator_count=len(snapshot.indicators),
            excluded_pillars=[p.value for p in result.excluded_pillars],
            run_timed_out=result.run_timed_out,
            duration_ms=snapshot.duration_ms,
            pillar_scores={p.pillar.value: p.score for p in snapshot.pillars},
            snapshot=snapshot.to_dict(),
        )
        session.add(record)
        session.flush()

        _log_persistence(
            "ccpi_runs", 1,
            f"score={result.ccpi_score:.1f}, band={result.risk_band.value}",
        )
        return record

    except SQLAlchemyError as e:
        logger.error(f"Persist ccpi_runs FAILED: {e}")
        raise DatabasePersistenceError(f"Failed to persist CCPI run: {e}") from e


def get_history(session: Session, limit: int = 30) -> List[CCPIRunRecord]:
    """
    Most recent runs, newest first.

    limit is clamped to [1, MAX_HISTORY_LIMIT].
    """
    limit = max(1, min(int(limit), MAX_HISTORY_LIMIT))
    try:
        stmt = (
            select(CCPIRunRecord)
            .order_by(CCPIRunRecord.timestamp.desc(), CCPIRunRecord.id.desc())
            .limit(limit)
        )
        return [_as_utc(r) for r in session.execute(stmt).scalars().all()]
    except SQLAlchemyError as e:
        logger.error(f"Load ccpi_runs FAILED: {e}")
        raise DatabasePersistenceError(f"Failed to load CCPI history: {e}") from e


def get_latest(session: Session) -> Optional[CCPIRunRecord]:
    """Most recent run, or None on an empty table."""
    records = get_history(session, limit=1)
    return records[0] if records else None
