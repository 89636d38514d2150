"""
Per-command execution records and the batch's append-only result log.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from .classify import Classification, classify
from .runner import CommandResult

DEFAULT_PREFIX = "neutron "


@dataclass
class CommandRecord:
    command: str
    seq: int = 0
    output: str = ""
    error: str = ""
    exit_code: int = 0
    duration: float = 0.0
    resource_type: str = ""
    operation_type: str = ""
    loadbalancer: str = ""

    def __post_init__(self) -> None:
        if not self.resource_type and not self.operation_type:
            kind = self.classification
            self.resource_type = kind.resource
            self.operation_type = kind.operation

    @property
    def classification(self) -> Classification:
        return classify(self.command.split())

    @classmethod
    def from_line(cls, line: str, prefix: str = DEFAULT_PREFIX) -> "CommandRecord":
        """Build a record from a generated ``<loadbalancer>|<args>`` line."""
        loadbalancer, sep, args = line.partition("|")
        if not sep:
            loadbalancer, args = "", line
        return cls(command=f"{prefix}{args}", loadbalancer=loadbalancer)

    @property
    def duration_ms(self) -> int:
        return int(self.duration * 1000)

    @property
    def failed(self) -> bool:
        return self.exit_code != 0

    def fill(self, result: CommandResult) -> None:
        self.output = result.output
        self.error = result.error
        self.exit_code = result.exit_code
        self.duration = result.duration

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seqnum": self.seq,
            "command": self.command,
            "output": self.output,
            "error": self.error,
            "exitcode": self.exit_code,
            # nanoseconds, the unit existing result files use
            "duration": int(self.duration * 1_000_000_000),
            "resource_type": self.resource_type,
            "operation_type": self.operation_type,
            "loadbalancer": self.loadbalancer,
        }


class ResultLog:
    """
    Append-only collection of finished records.

    The orchestrator is the only writer. ``snapshot`` copies the list in a
    single step, so it is safe to call from a signal handler at any point.
    """

    def __init__(self) -> None:
        self._records: List[CommandRecord] = []

    def append(self, record: CommandRecord) -> None:
        self._records.append(record)

    def snapshot(self) -> Tuple[CommandRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)
