"""
Batch orchestration: expand the template once, then gate and run each
generated command in order.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Sequence

from .gate import ReadinessGate
from .records import DEFAULT_PREFIX, CommandRecord, ResultLog
from .runner import CommandResult, ExecutionContext, run_command
from .template import expand

log = logging.getLogger(__name__)


def build_commands(template: str, variables: Mapping[str, Sequence[str]], loadbalancer: str = "") -> List[str]:
    """
    Expand ``template`` into ``<loadbalancer>|<args>`` lines.

    The load balancer text is expanded together with the template so it can
    reference the same placeholders.
    """
    return expand(f"{loadbalancer}|{template}", variables)


@dataclass
class BatchResult:
    records: List[CommandRecord] = field(default_factory=list)
    total: int = 0
    aborted: bool = False
    abort_reason: Optional[str] = None

    @property
    def failed(self) -> List[CommandRecord]:
        return [r for r in self.records if r.failed]


class BatchRunner:
    def __init__(
        self,
        lines: Sequence[str],
        gate: ReadinessGate,
        context: ExecutionContext,
        results: Optional[ResultLog] = None,
        prefix: str = DEFAULT_PREFIX,
        pace: float = 1.0,
        post_check: bool = False,
        sleep: Optional[Callable[[float], None]] = None,
        run: Optional[Callable[[str, ExecutionContext], CommandResult]] = None,
    ) -> None:
        self.lines = list(lines)
        self.gate = gate
        self.context = context
        self.results = results if results is not None else ResultLog()
        self.prefix = prefix
        self.pace = pace
        self.post_check = post_check
        self.sleep = sleep or time.sleep
        self.run_one = run or run_command

    def run(self) -> BatchResult:
        total = len(self.lines)
        result = BatchResult(total=total)
        for idx, line in enumerate(self.lines, start=1):
            record = CommandRecord.from_line(line, self.prefix)
            record.seq = idx
            tag = f"Command({idx}/{total}):"

            log.info("%s Prepare to run '%s'", tag, record.command)
            outcome = self.gate.pre_check(record, tag)
            if not outcome.ok:
                log.error("%s Not ready to run this command: %s", tag, outcome.error)
                result.aborted = True
                result.abort_reason = outcome.error
                break

            log.info("%s Start '%s'", tag, record.command)
            record.fill(self.run_one(record.command, self.context))
            log.info("%s exits with: %d, executing time: %d ms", tag, record.exit_code, record.duration_ms)
            self.sleep(self.pace)

            if record.failed:
                log.warning("%s Error output: %s", tag, record.error)
            elif self.post_check:
                settled = self.gate.post_check(record, tag)
                if not settled.ok:
                    log.warning("%s LB: %s left PENDING (%s)", tag, record.loadbalancer, settled.error)

            self.results.append(record)

        result.records = list(self.results.snapshot())
        return result
