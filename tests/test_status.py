"""Unit tests for provisioning-status probes."""

import pytest
from sqlalchemy import create_engine, text

from batchops import status as status_mod
from batchops.config import DatabaseConfig
from batchops.runner import CommandResult, ExecutionContext
from batchops.status import (
    CliStatusProbe,
    DatabaseStatusProbe,
    StatusCheckError,
    build_engine,
    looks_like_id,
)

LB_ID = "7b1c3c3e-0d7a-4f0a-9a55-3c7f1f1d2e11"


class TestCliStatusProbe:
    def test_reads_provisioning_status(self, monkeypatch):
        seen = []

        def fake_run(command, context):
            seen.append(command)
            return CommandResult(output='{"id": "1", "name": "lb-1", "provisioning_status": "PENDING_UPDATE"}')

        monkeypatch.setattr(status_mod, "run_command", fake_run)
        probe = CliStatusProbe(ExecutionContext(env={}))
        assert probe("lb-1") == "PENDING_UPDATE"
        assert seen == ["neutron lbaas-loadbalancer-show lb-1"]

    def test_non_zero_exit_raises(self, monkeypatch):
        monkeypatch.setattr(
            status_mod,
            "run_command",
            lambda command, context: CommandResult(error="Unable to find loadbalancer", exit_code=1),
        )
        with pytest.raises(StatusCheckError, match="Unable to find"):
            CliStatusProbe(ExecutionContext(env={}))("lb-x")

    def test_unparsable_output_raises(self, monkeypatch):
        monkeypatch.setattr(status_mod, "run_command", lambda command, context: CommandResult(output="not json"))
        with pytest.raises(StatusCheckError):
            CliStatusProbe(ExecutionContext(env={}))("lb-1")

    def test_missing_status_field_raises(self, monkeypatch):
        monkeypatch.setattr(status_mod, "run_command", lambda command, context: CommandResult(output='{"id": "1"}'))
        with pytest.raises(StatusCheckError):
            CliStatusProbe(ExecutionContext(env={}))("lb-1")


@pytest.fixture
def engine(tmp_path):
    eng = create_engine(f"sqlite:///{tmp_path / 'neutron.db'}")
    with eng.begin() as conn:
        conn.execute(text("CREATE TABLE lbaas_loadbalancers (id TEXT, name TEXT, provisioning_status TEXT)"))
        conn.execute(text("CREATE TABLE lbaas_members (id TEXT, name TEXT, provisioning_status TEXT)"))
        conn.execute(
            text("INSERT INTO lbaas_loadbalancers VALUES (:id, :name, :status)"),
            [
                {"id": LB_ID, "name": "lb-1", "status": "ACTIVE"},
                {"id": "8c2d4d4f-1e8b-4a1b-8b66-4d8a2a2e3f22", "name": "dup", "status": "ACTIVE"},
                {"id": "9d3e5e5a-2f9c-4b2c-9c77-5e9b3b3f4a33", "name": "dup", "status": "PENDING_CREATE"},
            ],
        )
        conn.execute(
            text("INSERT INTO lbaas_members VALUES (:id, :name, :status)"),
            {"id": "m-1", "name": "mb-1", "status": "PENDING_CREATE"},
        )
    yield eng
    eng.dispose()


class TestDatabaseStatusProbe:
    def test_lookup_by_name(self, engine):
        assert DatabaseStatusProbe(engine)("lb-1") == "ACTIVE"

    def test_lookup_by_id(self, engine):
        assert DatabaseStatusProbe(engine)(LB_ID) == "ACTIVE"

    def test_other_resource_table(self, engine):
        probe = DatabaseStatusProbe(engine)
        assert probe.provisioning_status("member", "mb-1") == "PENDING_CREATE"

    def test_no_rows(self, engine):
        with pytest.raises(StatusCheckError, match="has 0 records"):
            DatabaseStatusProbe(engine)("lb-missing")

    def test_multiple_rows(self, engine):
        with pytest.raises(StatusCheckError, match="has 2 records"):
            DatabaseStatusProbe(engine)("dup")

    def test_unknown_resource(self, engine):
        with pytest.raises(StatusCheckError, match="Unknown resource"):
            DatabaseStatusProbe(engine).provisioning_status("vip", "x")

    def test_query_errors_are_wrapped(self, engine):
        # table exists in the mapping but not in this database
        with pytest.raises(StatusCheckError, match="failed"):
            DatabaseStatusProbe(engine).provisioning_status("pool", "pl-1")


class TestHelpers:
    def test_looks_like_id(self):
        assert looks_like_id(LB_ID)
        assert not looks_like_id("lb-1")
        assert not looks_like_id("x" * 36)

    def test_build_engine_checks_connection(self, monkeypatch, tmp_path):
        cfg = DatabaseConfig("neutron", "secret", "neutron", "db.example", "3306")
        urls = []

        def fake_create_engine(url, **kwargs):
            urls.append(url)
            return create_engine(f"sqlite:///{tmp_path / 'x.db'}")

        monkeypatch.setattr(status_mod, "create_engine", fake_create_engine)
        engine = build_engine(cfg)
        assert urls[0].drivername == "mysql+pymysql"
        assert urls[0].host == "db.example"
        assert urls[0].port == 3306
        engine.dispose()
