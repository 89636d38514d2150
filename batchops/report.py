"""
Result output: JSON records for machines, a plain-text summary for people.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import IO, Iterable, List, Optional, Sequence

from .records import CommandRecord

log = logging.getLogger(__name__)

STDOUT_SENTINELS = {"/dev/stdout", "-"}


def is_stdout(path: str) -> bool:
    return path in STDOUT_SENTINELS


def dump_records(records: Iterable[CommandRecord]) -> str:
    return json.dumps([r.to_dict() for r in records], indent=2)


class ResultWriter:
    """Appends the JSON record list to a file, or prints it to stdout."""

    def __init__(self, path: str, stream: Optional[IO[str]] = None):
        self.path = path
        self._stream = stream
        self._fp: Optional[IO[str]] = None
        if not is_stdout(path):
            self._fp = open(path, "a", encoding="utf-8")

    def write(self, records: Sequence[CommandRecord]) -> None:
        data = dump_records(records)
        if self._fp is None:
            out = self._stream or sys.stdout
            out.write(data + "\n")
            out.flush()
            return
        written = self._fp.write(data)
        self._fp.flush()
        log.info("Written executions to file %s: data-len:%d", self.path, written)

    def close(self) -> None:
        if self._fp:
            self._fp.close()
            self._fp = None


def format_report(records: Sequence[CommandRecord]) -> str:
    lines: List[str] = [
        "",
        "---------------------- Execution Report ----------------------",
        "",
    ]
    for r in records:
        lines.append(f"{r.seq}: {r.command} | Exited: {r.exit_code} | duration: {r.duration_ms} ms")
    lines.append("")
    lines.append("Failed Command List:")
    lines.extend(r.command for r in records if r.failed)
    lines.append("")
    lines.append("-----------------------Execution Report End ---------------------")
    lines.append("")
    return "\n".join(lines)


def print_report(records: Sequence[CommandRecord], stream: Optional[IO[str]] = None) -> None:
    print(format_report(records), file=stream or sys.stdout)
