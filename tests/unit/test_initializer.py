import asyncio

import pytest

from adapters.base import AdapterError, DatabaseConnectionError
from adapters.factory import PersistenceConfig
from adapters.sqlite import SQLiteAdapter
from persistence.initializer import InitState, Persistence
from seed.engine import SeedError
from seed.records import ADMIN_EMAIL


class CountingFactory:
    def __init__(self, failures=0):
        self.calls = 0
        self.failures = failures
        self.adapters = []

    async def __call__(self, config):
        self.calls += 1
        # Yield so concurrent callers pile up behind the first attempt.
        await asyncio.sleep(0)
        if self.calls <= self.failures:
            raise DatabaseConnectionError("Cannot reach PostgreSQL server: connection refused")
        adapter = SQLiteAdapter(config.sqlite_path)
        self.adapters.append(adapter)
        return adapter


@pytest.fixture
def config(tmp_path):
    return PersistenceConfig(database_url=None, sqlite_path=str(tmp_path / "init.db"))


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_bootstrap(config):
    factory = CountingFactory()
    persistence = Persistence(config, adapter_factory=factory)
    try:
        results = await asyncio.gather(*(persistence.initialize() for _ in range(5)))

        assert factory.calls == 1
        assert all(adapter is results[0] for adapter in results)
        assert persistence.state is InitState.READY
        assert persistence.adapter is results[0]
        assert await persistence.initialize() is results[0]
        assert factory.calls == 1
    finally:
        await persistence.close()


@pytest.mark.asyncio
async def test_failed_bootstrap_reaches_every_caller_and_can_be_retried(config):
    factory = CountingFactory(failures=1)
    persistence = Persistence(config, adapter_factory=factory)

    results = await asyncio.gather(persistence.initialize(), persistence.initialize(), return_exceptions=True)

    assert factory.calls == 1
    assert all(isinstance(result, DatabaseConnectionError) for result in results)
    assert persistence.state is InitState.UNINITIALIZED

    adapter = await persistence.initialize()
    try:
        assert factory.calls == 2
        assert persistence.state is InitState.READY
        assert adapter.engine == "sqlite"
    finally:
        await persistence.close()


@pytest.mark.asyncio
async def test_seed_failure_closes_the_adapter(config, monkeypatch):
    async def broken_seeds(adapter):
        raise SeedError("Seed step 'tenants' failed: disk I/O error")

    monkeypatch.setattr("persistence.initializer.run_seeds", broken_seeds)
    factory = CountingFactory()
    persistence = Persistence(config, adapter_factory=factory)

    with pytest.raises(SeedError, match="tenants"):
        await persistence.initialize()

    assert persistence.state is InitState.UNINITIALIZED
    assert factory.adapters[0]._conn is None
    with pytest.raises(AdapterError, match="not ready"):
        persistence.adapter


def test_adapter_is_unavailable_before_initialization(config):
    persistence = Persistence(config)
    assert persistence.state is InitState.UNINITIALIZED
    with pytest.raises(AdapterError, match="uninitialized"):
        persistence.adapter


@pytest.mark.asyncio
async def test_restart_keeps_single_admin_and_password_hash(config):
    first = Persistence(config)
    adapter = await first.initialize()
    assert first.seed_summary["bootstrap_identity"] is True
    hash_before = (await adapter.prepare("SELECT password FROM users WHERE email = ?").get(ADMIN_EMAIL))["password"]
    await first.close()
    assert first.state is InitState.UNINITIALIZED

    second = Persistence(config)
    adapter = await second.initialize()
    try:
        assert second.schema_report.columns_added == []
        assert second.seed_summary["bootstrap_identity"] is False
        rows = await adapter.prepare("SELECT password FROM users WHERE email = ?").all(ADMIN_EMAIL)
        assert rows == [{"password": hash_before}]
    finally:
        await second.close()


@pytest.mark.asyncio
async def test_close_without_initialize_is_harmless(config):
    persistence = Persistence(config)
    await persistence.close()
    assert persistence.state is InitState.UNINITIALIZED
