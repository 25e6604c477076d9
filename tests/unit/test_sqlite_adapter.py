import sqlite3

import pytest
import pytest_asyncio

from adapters.base import DatabaseConnectionError, ErrorOutcome, MissingParameterError
from adapters.factory import PersistenceConfig, get_adapter
from adapters.sqlite import SQLiteAdapter


@pytest_asyncio.fixture
async def adapter(tmp_path):
    db = SQLiteAdapter(tmp_path / "adapter.db")
    await db.execute("CREATE TABLE records (id INTEGER PRIMARY KEY AUTOINCREMENT, country TEXT, amount REAL)")
    yield db
    await db.close()


@pytest.mark.asyncio
async def test_sqlite_adapter_prepare_all_get_run(adapter):
    insert = adapter.prepare("INSERT INTO records (country, amount) VALUES (@country, @amount)")
    first = await insert.run({"country": "A", "amount": 10.0})
    second = await insert.run({"country": "B", "amount": 20.0})
    assert first.rows_affected == 1
    assert first.generated_id == 1
    assert second.generated_id == 2

    rows = await adapter.prepare("SELECT country, amount FROM records ORDER BY amount DESC").all()
    assert rows == [{"country": "B", "amount": 20.0}, {"country": "A", "amount": 10.0}]

    row = await adapter.prepare("SELECT country FROM records WHERE amount = ?").get(10.0)
    assert row == {"country": "A"}
    assert await adapter.prepare("SELECT country FROM records WHERE amount = ?").get(99.0) is None


@pytest.mark.asyncio
async def test_sqlite_update_reports_rows_affected_without_generated_id(adapter):
    await adapter.prepare("INSERT INTO records (country, amount) VALUES (?, ?)").run("A", 1.0)
    await adapter.prepare("INSERT INTO records (country, amount) VALUES (?, ?)").run("A", 2.0)
    result = await adapter.prepare("UPDATE records SET amount = 0 WHERE country = ?").run("A")
    assert result.rows_affected == 2
    assert result.generated_id is None


@pytest.mark.asyncio
async def test_insert_that_writes_nothing_reports_no_generated_id(adapter):
    await adapter.prepare("INSERT INTO records (country, amount) VALUES (?, ?)").run("A", 1.0)

    noop = await adapter.prepare("INSERT INTO records (country, amount) SELECT ?, ? WHERE 0 = 1").run("B", 2.0)

    assert noop.rows_affected == 0
    assert noop.generated_id is None


@pytest.mark.asyncio
async def test_execute_accepts_several_statements(adapter):
    await adapter.execute("CREATE TABLE a (x INTEGER); CREATE TABLE b (y INTEGER); INSERT INTO a (x) VALUES (1);")

    assert await adapter.prepare("SELECT x FROM a").all() == [{"x": 1}]
    assert await adapter.prepare("SELECT COUNT(*) AS n FROM b").get() == {"n": 0}


@pytest.mark.asyncio
async def test_sqlite_statements_commit_independently(adapter, tmp_path):
    await adapter.prepare("INSERT INTO records (country, amount) VALUES (?, ?)").run("C", 3.0)
    other = sqlite3.connect(str(tmp_path / "adapter.db"))
    try:
        assert other.execute("SELECT COUNT(*) FROM records").fetchone()[0] == 1
    finally:
        other.close()


@pytest.mark.asyncio
async def test_missing_named_parameter_never_reaches_sqlite(adapter):
    with pytest.raises(MissingParameterError):
        await adapter.prepare("INSERT INTO records (country, amount) VALUES (@country, @amount)").run({"country": "X"})
    assert await adapter.prepare("SELECT COUNT(*) AS n FROM records").get() == {"n": 0}


@pytest.mark.asyncio
async def test_driver_errors_pass_through_unmodified(adapter):
    with pytest.raises(sqlite3.OperationalError, match="no such table"):
        await adapter.prepare("SELECT * FROM missing_table").all()


@pytest.mark.asyncio
async def test_duplicate_column_is_classified_ignorable(adapter):
    await adapter.execute("ALTER TABLE records ADD COLUMN note TEXT")
    with pytest.raises(sqlite3.OperationalError) as excinfo:
        await adapter.execute("ALTER TABLE records ADD COLUMN note TEXT")
    assert adapter.classify_schema_error(excinfo.value) is ErrorOutcome.IGNORABLE
    assert adapter.classify_schema_error(sqlite3.OperationalError("no such table: x")) is ErrorOutcome.FATAL
    assert adapter.classify_schema_error(ValueError("duplicate column name: note")) is ErrorOutcome.FATAL


@pytest.mark.asyncio
async def test_factory_selects_sqlite_without_database_url(tmp_path):
    db = await get_adapter(PersistenceConfig(database_url=None, sqlite_path=str(tmp_path / "nested" / "app.db")))
    try:
        assert db.engine == "sqlite"
        assert (tmp_path / "nested" / "app.db").exists()
    finally:
        await db.close()


def test_unopenable_sqlite_path_fails_at_construction(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    with pytest.raises(DatabaseConnectionError):
        SQLiteAdapter(blocker / "db.sqlite")


def test_config_from_env_defaults_to_cwd_file(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_PATH", raising=False)
    monkeypatch.setenv("DATABASE_SSL", "strict")
    monkeypatch.delenv("DATABASE_SSL_MODE", raising=False)
    config = PersistenceConfig.from_env()
    assert config.engine == "sqlite"
    assert config.sqlite_path == str(tmp_path / "recims.db")
    assert config.ssl_mode == "strict"
