import json

from fastapi.testclient import TestClient

from api.main import app
from persistence.cli import main


def _use_sqlite(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_SSL_MODE", raising=False)
    monkeypatch.delenv("DATABASE_SSL", raising=False)
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "api.db"))


def test_health_and_diagnostics_after_startup(monkeypatch, tmp_path):
    _use_sqlite(monkeypatch, tmp_path)

    with TestClient(app) as client:
        health = client.get("/health")
        assert health.status_code == 200
        assert health.json() == {"status": "ok", "state": "ready", "engine": "sqlite"}

        diagnostics = client.get("/diagnostics/persistence")
        assert diagnostics.status_code == 200
        body = diagnostics.json()
        assert body["mode"] == "sqlite"
        assert body["has_database_url"] is False
        assert body["sqlite_path"] == str(tmp_path / "api.db")
        assert body["state"] == "ready"

    assert (tmp_path / "api.db").exists()


def test_cli_diagnostics_prints_json(monkeypatch, tmp_path, capsys):
    _use_sqlite(monkeypatch, tmp_path)

    assert main(["diagnostics"]) == 0

    report = json.loads(capsys.readouterr().out)
    assert report["mode"] == "sqlite"
    assert report["state"] == "uninitialized"


def test_cli_init_creates_schema_and_seeds(monkeypatch, tmp_path, capsys):
    _use_sqlite(monkeypatch, tmp_path)

    assert main(["init"]) == 0
    first = json.loads(capsys.readouterr().out)
    assert first["status"] == "ok"
    assert first["engine"] == "sqlite"
    assert "tenants" in first["tables"]
    assert first["seeds"]["tenants"]["inserted"] == 2
    assert first["seeds"]["bootstrap_identity"] is True

    assert main(["init", "--pretty"]) == 0
    second = json.loads(capsys.readouterr().out)
    assert second["columns_added"] == []
    assert second["seeds"]["tenants"]["unchanged"] == 2
    assert second["seeds"]["bootstrap_identity"] is False
