"""Once-built persistence handle: adapter construction, schema and seeds.

Build one ``Persistence`` at process entry and pass it to whatever needs the
database. ``initialize()`` may be awaited from any number of call sites;
concurrent first callers share a single bootstrap attempt.
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import structlog

from adapters.base import AdapterError, DatabaseAdapter
from adapters.factory import PersistenceConfig, get_adapter
from schema.manager import SchemaReport, ensure_schema
from seed.engine import run_seeds

logger = structlog.get_logger(__name__)

AdapterFactory = Callable[[PersistenceConfig], Awaitable[DatabaseAdapter]]


class InitState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class Persistence:
    def __init__(self, config: Optional[PersistenceConfig] = None, adapter_factory: AdapterFactory = get_adapter):
        self.config = config or PersistenceConfig.from_env()
        self._adapter_factory = adapter_factory
        self._state = InitState.UNINITIALIZED
        self._adapter: Optional[DatabaseAdapter] = None
        self._bootstrap_task: Optional[asyncio.Task] = None
        self.schema_report: Optional[SchemaReport] = None
        self.seed_summary: Dict[str, Any] = {}

    @property
    def state(self) -> InitState:
        return self._state

    @property
    def adapter(self) -> DatabaseAdapter:
        if self._state is not InitState.READY or self._adapter is None:
            raise AdapterError(f"Persistence is not ready (state={self._state.value})")
        return self._adapter

    async def initialize(self) -> DatabaseAdapter:
        if self._state is InitState.READY and self._adapter is not None:
            return self._adapter
        if self._bootstrap_task is None:
            self._state = InitState.INITIALIZING
            self._bootstrap_task = asyncio.ensure_future(self._bootstrap())
        # Shielded so one cancelled waiter does not abort the shared attempt.
        return await asyncio.shield(self._bootstrap_task)

    async def _bootstrap(self) -> DatabaseAdapter:
        adapter: Optional[DatabaseAdapter] = None
        try:
            adapter = await self._adapter_factory(self.config)
            self.schema_report = await ensure_schema(adapter)
            self.seed_summary = await run_seeds(adapter)
        except BaseException as exc:
            logger.error("persistence_initialization_failed", engine=self.config.engine, error=str(exc))
            if adapter is not None:
                await adapter.close()
            self._state = InitState.UNINITIALIZED
            self._bootstrap_task = None
            raise
        self._adapter = adapter
        self._state = InitState.READY
        self._bootstrap_task = None
        logger.info(
            "persistence_ready",
            engine=adapter.engine,
            columns_added=len(self.schema_report.columns_added),
        )
        return adapter

    async def close(self) -> None:
        if self._bootstrap_task is not None:
            try:
                await self._bootstrap_task
            except Exception:
                logger.warning("persistence_closed_after_failed_initialization")
        if self._adapter is not None:
            await self._adapter.close()
        self._adapter = None
        self._state = InitState.UNINITIALIZED
        logger.info("persistence_closed")
