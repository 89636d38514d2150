"""
Load balancer provisioning-status lookups.

Two sources are supported: the neutron CLI (``lbaas-loadbalancer-show``) and,
when database credentials are configured, a direct read of the neutron
database through SQLAlchemy.
"""

from __future__ import annotations

import json
import logging
import re
from typing import TYPE_CHECKING, Dict

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .runner import ExecutionContext, run_command

if TYPE_CHECKING:
    from .config import DatabaseConfig

log = logging.getLogger(__name__)

RESOURCE_TABLES: Dict[str, str] = {
    "loadbalancer": "lbaas_loadbalancers",
    "pool": "lbaas_pools",
    "listener": "lbaas_listeners",
    "healthmonitor": "lbaas_healthmonitors",
    "member": "lbaas_members",
    "l7policy": "lbaas_l7policies",
}

_UUID_RE = re.compile(r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$")


class StatusCheckError(RuntimeError):
    pass


def looks_like_id(value: str) -> bool:
    return bool(_UUID_RE.match(value))


class CliStatusProbe:
    """Reads a load balancer's status by running ``lbaas-loadbalancer-show``."""

    def __init__(self, context: ExecutionContext, binary: str = "neutron"):
        self.context = context
        self.binary = binary

    def __call__(self, loadbalancer: str) -> str:
        result = run_command(f"{self.binary} lbaas-loadbalancer-show {loadbalancer}", self.context)
        if result.exit_code != 0:
            raise StatusCheckError(result.error.strip() or f"exit code {result.exit_code}")
        try:
            payload = json.loads(result.output)
        except json.JSONDecodeError as exc:
            raise StatusCheckError(f"Unparsable show output for {loadbalancer}: {exc}") from exc
        if not isinstance(payload, dict) or "provisioning_status" not in payload:
            raise StatusCheckError(f"No provisioning_status in show output for {loadbalancer}")
        return str(payload["provisioning_status"])


class DatabaseStatusProbe:
    """Reads provisioning status straight from the neutron LBaaS tables."""

    def __init__(self, engine: Engine, resource: str = "loadbalancer"):
        self.engine = engine
        self.resource = resource

    def __call__(self, loadbalancer: str) -> str:
        return self.provisioning_status(self.resource, loadbalancer)

    def provisioning_status(self, resource: str, id_or_name: str) -> str:
        table = RESOURCE_TABLES.get(resource)
        if table is None:
            raise StatusCheckError(f"Unknown resource type: {resource}")
        column = "id" if looks_like_id(id_or_name) else "name"
        query = text(f"SELECT provisioning_status FROM {table} WHERE {column} = :value")
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query, {"value": id_or_name}).fetchall()
        except SQLAlchemyError as exc:
            raise StatusCheckError(f"Database lookup for {resource} {id_or_name} failed: {exc}") from exc
        if len(rows) != 1:
            raise StatusCheckError(f"{resource} {id_or_name} has {len(rows)} records")
        return str(rows[0][0])


def build_engine(db: "DatabaseConfig") -> Engine:
    """Create the database engine and make sure it can connect."""
    engine = create_engine(db.url(), pool_pre_ping=True)
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    log.info("Connected to database %s at %s:%s", db.dbname, db.hostname, db.port)
    return engine
