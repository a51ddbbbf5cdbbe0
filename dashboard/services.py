"""
CCPI Service for the Dashboard API.

Holds the engine, the latest snapshot and the run history.

- Latest snapshot is cached in memory for cache_max_age_seconds
- Concurrent refreshes collapse into one run (asyncio.Lock)
- The newest snapshot by timestamp wins
- Persistence failures are logged; the snapshot is still served
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ccpi.config import CCPIConfig, get_config
from ccpi.engine import CCPIEngine
from ccpi.registry import IndicatorRegistry, load_default_registry
from ccpi.types import CCPISnapshot
from indicator_sources.catalog import SourceCatalog, build_default_catalog

from database.engine import (
    DatabasePersistenceError,
    initialize_database,
    transaction_scope,
)
from database.persistence import get_history as load_history, persist_snapshot

logger = logging.getLogger(__name__)


class CCPIService:
    def __init__(
        self,
        engine: CCPIEngine,
        config: Optional[CCPIConfig] = None,
        persist_runs: Optional[bool] = None,
    ):
        self.engine = engine
        self.config = config or engine.config
        self.persist_runs = self.config.persist_runs if persist_runs is None else persist_runs

        self._latest: Optional[CCPISnapshot] = None
        self._lock = asyncio.Lock()
        self._refresh_task: Optional[asyncio.Task] = None
        self.started_at = datetime.now(timezone.utc)

    @property
    def registry(self) -> IndicatorRegistry:
        return self.engine.registry

    @property
    def catalog(self) -> SourceCatalog:
        return self.engine.catalog

    @property
    def latest(self) -> Optional[CCPISnapshot]:
        return self._latest

    # =======================
    # 1. LATEST SNAPSHOT
    # =======================
    def publish(self, snapshot: CCPISnapshot) -> bool:
        """
        Store a snapshot unless a newer one is already held.

        Returns True when the snapshot became the latest.
        """
        if self._latest is not None and snapshot.timestamp < self._latest.timestamp:
            logger.info(
                f"Discarding stale snapshot from {snapshot.timestamp.isoformat()} "
                f"(holding {self._latest.timestamp.isoformat()})"
            )
            return False
        self._latest = snapshot
        return True

    def is_fresh(self, now: Optional[datetime] = None) -> bool:
        if self._latest is None:
            return False
        now = now or datetime.now(timezone.utc)
        age = (now - self._latest.timestamp).total_seconds()
        return age < self.config.cache_max_age_seconds

    async def get_snapshot(self, force_refresh: bool = False) -> CCPISnapshot:
        """Cached snapshot, or a fresh run when stale or forced."""
        if not force_refresh and self.is_fresh():
            return self._latest

        async with self._lock:
            # Another caller may have refreshed while we waited
            if not force_refresh and self.is_fresh():
                return self._latest
            await self.refresh()
        return self._latest

    async def refresh(self) -> CCPISnapshot:
        """Run the engine once, publish and persist the result."""
        snapshot = await self.engine.run()
        self.publish(snapshot)
        if self.persist_runs:
            self._persist(snapshot)
        return snapshot

    def _persist(self, snapshot: CCPISnapshot) -> None:
        try:
            with transaction_scope() as session:
                persist_snapshot(session, snapshot)
        except DatabasePersistenceError as e:
            logger.error(f"Run not persisted, serving from memory only: {e}")

    # =======================
    # 2. HISTORY
    # =======================
    def get_history(self, limit: int = 30) -> List[Dict[str, Any]]:
        """
        Persisted runs, newest first.

        Raises:
            DatabasePersistenceError if the history cannot be read
        """
        if not self.persist_runs:
            return []
        with transaction_scope() as session:
            return [record.to_dict() for record in load_history(session, limit)]

    # =======================
    # 3. SOURCES
    # =======================
    def get_sources(self) -> Dict[str, Any]:
        return self.catalog.get_stats()

    # =======================
    # 4. BACKGROUND REFRESH
    # =======================
    def start(self) -> None:
        """Start the periodic refresh loop when an interval is configured."""
        interval = self.config.refresh_interval_seconds
        if interval <= 0 or self._refresh_task is not None:
            return
        self._refresh_task = asyncio.create_task(self._refresh_loop(interval), name="ccpi:refresh")
        logger.info(f"Background refresh every {interval}s")

    async def _refresh_loop(self, interval: int) -> None:
        while True:
            try:
                await self.get_snapshot(force_refresh=True)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Background refresh failed: {e}")
            await asyncio.sleep(interval)

    async def stop(self) -> None:
        if self._refresh_task is None:
            return
        self._refresh_task.cancel()
        try:
            await self._refresh_task
        except asyncio.CancelledError:
            pass
        self._refresh_task = None

    async def close(self) -> None:
        await self.stop()
        await self.catalog.close()


def create_service(config: Optional[CCPIConfig] = None) -> CCPIService:
    """Wire the default catalog, registry and engine into a service."""
    config = config or get_config()
    catalog = build_default_catalog()
    registry = load_default_registry(catalog.source_kinds())
    service = CCPIService(CCPIEngine(catalog, registry, config), config)

    if service.persist_runs:
        try:
            initialize_database()
        except DatabasePersistenceError as e:
            logger.error(f"History database unavailable, persistence disabled: {e}")
            service.persist_runs = False

    return service
