"""Pytest configuration and shared fixtures."""

from typing import Iterable, List, Union

import pytest

from batchops.gate import ReadinessGate
from batchops.runner import CommandResult, ExecutionContext
from batchops.status import StatusCheckError


class ScriptedProbe:
    """Returns statuses (or raises errors) from a fixed script."""

    def __init__(self, script: Iterable[Union[str, Exception]]):
        self.script = list(script)
        self.calls: List[str] = []

    def __call__(self, loadbalancer: str) -> str:
        self.calls.append(loadbalancer)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item


class FakeRun:
    """Stands in for run_command, recording commands and returning exit codes."""

    def __init__(self, exit_codes=None):
        self.exit_codes = dict(exit_codes or {})
        self.commands: List[str] = []

    def __call__(self, command: str, context: ExecutionContext) -> CommandResult:
        self.commands.append(command)
        code = self.exit_codes.get(len(self.commands), 0)
        return CommandResult(
            output='{"id": "x"}' if code == 0 else "",
            error="" if code == 0 else "Conflict",
            exit_code=code,
            duration=0.25,
        )


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_gate(sleeps):
    def _make(script, **kwargs):
        probe = ScriptedProbe(script)
        gate = ReadinessGate(probe, sleep=sleeps.append, **kwargs)
        return gate, probe

    return _make


@pytest.fixture
def probe_error():
    return StatusCheckError("Unable to establish connection")
