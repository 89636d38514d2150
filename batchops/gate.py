"""
Readiness gate: wait for a load balancer to leave its PENDING_* state.

Neutron LBaaS applies changes asynchronously and rejects (or races) requests
against a load balancer that is still busy, so every mutating command waits
for the load balancer to settle before it runs, and optionally after.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .records import CommandRecord
from .status import StatusCheckError

log = logging.getLogger(__name__)

PENDING_PREFIX = "PENDING_"
DEFAULT_MAX_RETRIES = 64
DEFAULT_MAX_PROBE_ERRORS = 3
POST_CHECK_MAX_RETRIES = 32

StatusProbe = Callable[[str], str]


class GateState(enum.Enum):
    NOT_APPLICABLE = "not_applicable"
    CHECKING = "checking"
    READY = "ready"
    FAILED_PENDING_TIMEOUT = "failed_pending_timeout"
    FAILED_CHECK_ERRORS = "failed_check_errors"


@dataclass
class GateOutcome:
    state: GateState
    retries: int = 0
    probes: int = 0
    status: str = ""
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.state in (GateState.READY, GateState.NOT_APPLICABLE)


def is_pending(status: str) -> bool:
    return status.startswith(PENDING_PREFIX)


class ReadinessGate:
    def __init__(
        self,
        probe: StatusProbe,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_probe_errors: int = DEFAULT_MAX_PROBE_ERRORS,
        interval: float = 1.0,
        post_max_retries: int = POST_CHECK_MAX_RETRIES,
        sleep: Optional[Callable[[float], None]] = None,
    ) -> None:
        self.probe = probe
        self.max_retries = max_retries
        self.max_probe_errors = max_probe_errors
        self.interval = interval
        self.post_max_retries = post_max_retries
        self.sleep = sleep or time.sleep

    def pre_check(self, record: CommandRecord, prefix: str = "") -> GateOutcome:
        """Decide whether ``record`` may run now."""
        kind = record.classification
        if kind.is_read_only:
            return GateOutcome(GateState.NOT_APPLICABLE)
        if kind.resource == "loadbalancer" and kind.operation == "create":
            return GateOutcome(GateState.NOT_APPLICABLE)
        if not record.loadbalancer:
            return GateOutcome(GateState.NOT_APPLICABLE)

        log.info("%s Confirm %s is not pending", prefix, record.loadbalancer)
        return self.wait(record.loadbalancer, self.max_retries, self.max_probe_errors, prefix)

    def post_check(self, record: CommandRecord, prefix: str = "") -> GateOutcome:
        """Decide whether the batch may move on after ``record`` succeeded."""
        kind = record.classification
        if not kind.is_mutating:
            return GateOutcome(GateState.NOT_APPLICABLE)
        if not record.loadbalancer:
            log.info("%s No loadbalancer appointed, no check to do.", prefix)
            return GateOutcome(GateState.NOT_APPLICABLE)
        if kind.resource == "loadbalancer" and kind.operation == "delete":
            log.info("%s Loadbalancer deleted, no check to do.", prefix)
            return GateOutcome(GateState.NOT_APPLICABLE)

        started = time.monotonic()
        try:
            log.info("%s Check loadbalancer %s status", prefix, record.loadbalancer)
            return self.wait(record.loadbalancer, self.post_max_retries, 1, prefix)
        finally:
            log.info("%s Checked time: %d ms", prefix, int((time.monotonic() - started) * 1000))

    def wait(self, loadbalancer: str, max_retries: int, max_probe_errors: int, prefix: str = "") -> GateOutcome:
        """
        Poll ``loadbalancer`` until its status is not pending.

        Pending observations consume ``max_retries``; consecutive probe errors
        are counted separately against ``max_probe_errors``.
        """
        outcome = GateOutcome(GateState.CHECKING)
        errors = 0
        while outcome.state is GateState.CHECKING:
            outcome.probes += 1
            try:
                status = self.probe(loadbalancer)
            except StatusCheckError as exc:
                errors += 1
                outcome.error = str(exc)
                log.warning("%s Checking loadbalancer(%s) status failed: %s", prefix, loadbalancer, exc)
                if errors >= max_probe_errors:
                    outcome.state = GateState.FAILED_CHECK_ERRORS
                    outcome.error = (
                        f"Loadbalancer {loadbalancer} status check fails for {errors} times, "
                        f"last failure: {exc}"
                    )
                else:
                    self.sleep(self.interval)
                continue

            errors = 0
            outcome.status = status
            log.info("%s Checked loadbalancer %s status %s", prefix, loadbalancer, status)
            if not is_pending(status):
                outcome.state = GateState.READY
                outcome.error = None
                continue

            outcome.retries += 1
            if outcome.retries >= max_retries:
                outcome.state = GateState.FAILED_PENDING_TIMEOUT
                outcome.error = f"Loadbalancer {loadbalancer} is still PENDING after {max_retries} times' check"
            else:
                self.sleep(self.interval)
        return outcome
