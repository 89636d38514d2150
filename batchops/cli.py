"""
Command-line entrypoint for batch neutron LBaaS operations.
"""

from __future__ import annotations

import argparse
import logging
import os
import shutil
import signal
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml
from sqlalchemy.exc import SQLAlchemyError

from .batch import BatchRunner, build_commands
from .config import (
    MissingCredentialsError,
    build_batch_config,
    check_environment,
    load_config_file,
    merge_config,
)
from .gate import ReadinessGate
from .ranges import RangeError, parse_values
from .records import DEFAULT_PREFIX, CommandRecord, ResultLog
from .report import ResultWriter, print_report
from .runner import ExecutionContext
from .status import CliStatusProbe, DatabaseStatusProbe, build_engine
from .template import placeholder_names

log = logging.getLogger(__name__)

BINARY = "neutron"
TEMPLATE_MARKER = "--"
VARIABLES_MARKER = "++"
INTERRUPT_SIGNALS = ("SIGINT", "SIGHUP", "SIGTERM", "SIGQUIT")

USAGE = "%(prog)s [options] -- <neutron command and arguments> [++ variable-definition ...]"
EXAMPLE = """
Example:
  lbaas-batchops --output-filepath /dev/stdout --check-lb lb-1 \\
      -- lbaas-member-create --name mb-%{x} --subnet %{y} \\
         --address 10.0.0.%{x} --protocol-port 80 pl-1 \\
      ++ x:1-5 y:private-subnet

Variable definitions are name:values where values is a comma-separated list
of literals and inclusive numeric ranges, e.g. n:1-3,7,a,b
"""


class BatchInterrupted(Exception):
    def __init__(self, signum: int):
        super().__init__(f"interrupted by signal {signum}")
        self.signum = signum


def die(message: str, exit_code: int = 1) -> None:
    print(f"error: {message}", file=sys.stderr)
    sys.exit(exit_code)


def split_argv(argv: Sequence[str]) -> Tuple[List[str], Optional[List[str]], List[str]]:
    """
    Split raw arguments into options, template tokens and variable tokens.

    Template tokens are ``None`` when the ``--`` marker is missing.
    """
    argv = list(argv)
    if TEMPLATE_MARKER not in argv:
        return argv, None, []
    idx = argv.index(TEMPLATE_MARKER)
    options, rest = argv[:idx], argv[idx + 1:]
    if VARIABLES_MARKER in rest:
        jdx = rest.index(VARIABLES_MARKER)
        return options, rest[:jdx], rest[jdx + 1:]
    return options, rest, []


def parse_variables(template: str, assignments: Sequence[str]) -> Dict[str, List[str]]:
    """
    Bind ``name:values`` assignments to the placeholders used in ``template``.

    Repeated assignments for one name accumulate.
    """
    variables: Dict[str, List[str]] = {name: [] for name in placeholder_names(template)}
    for item in assignments:
        name, sep, spec = item.partition(":")
        if not sep or name not in variables:
            log.warning("Ignoring variable definition %r: no matching placeholder in template", item)
            continue
        variables[name].extend(parse_values(spec))

    for name, values in variables.items():
        if not values:
            log.warning("Placeholder %%{%s} has no values; no commands will be generated for it", name)
    return variables


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="lbaas-batchops",
        usage=USAGE,
        description="Generate and run neutron LBaaS commands in batch, waiting for the load balancer to settle.",
        epilog=EXAMPLE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", help="Optional YAML or JSON config file")
    parser.add_argument("--output-filepath", help="Append JSON results to this file (default: /dev/stdout)")
    parser.add_argument(
        "--max-check-times",
        type=int,
        default=None,
        help="Max times to check the load balancer is ready for the next command (default: 64)",
    )
    parser.add_argument("--check-lb", help="Load balancer name or id used for readiness checks")
    parser.add_argument("--db-username", help="Neutron database username")
    parser.add_argument("--db-password", help="Neutron database password")
    parser.add_argument("--db-dbname", help="Neutron database name")
    parser.add_argument("--db-hostname", help="Neutron database hostname")
    parser.add_argument("--db-tcpport", help="Neutron database port")
    parser.add_argument(
        "--post-check",
        action="store_true",
        default=None,
        help="Also wait for the load balancer to settle after each successful change",
    )
    parser.add_argument("--dry-run", action="store_true", default=None, help="Print generated commands without running them")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default: INFO)",
    )
    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
    )


def _raise_interrupted(signum: int, frame: Any) -> None:
    # Later signals are ignored until the partial results have been written.
    for name in INTERRUPT_SIGNALS:
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, signal.SIG_IGN)
    raise BatchInterrupted(signum)


def install_signal_handlers() -> Dict[int, Any]:
    previous: Dict[int, Any] = {}
    for name in INTERRUPT_SIGNALS:
        sig = getattr(signal, name, None)
        if sig is None:
            continue
        previous[sig] = signal.signal(sig, _raise_interrupted)
    return previous


def restore_signal_handlers(previous: Dict[int, Any]) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def main(argv: Optional[List[str]] = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    options, template_args, assignments = split_argv(argv)
    args = _parse_args(options)
    if template_args is None:
        die(f"missing '{TEMPLATE_MARKER}' before the neutron command; see --help", exit_code=2)

    try:
        file_cfg: Dict[str, Any] = load_config_file(args.config) if args.config else {}
        cli_cfg = {k: v for k, v in vars(args).items() if k != "config"}
        cfg = build_batch_config(merge_config(file_cfg, cli_cfg))
    except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        die(f"Failed to load config: {exc}")
    configure_logging(cfg.log_level)

    template = " ".join(template_args)
    log.info("Command template: %s|%s", cfg.check_lb, template)
    try:
        variables = parse_variables(f"{cfg.check_lb}|{template}", assignments)
    except RangeError as exc:
        die(str(exc))
    for name, values in variables.items():
        log.info("%10s: %s", name, values)
    lines = build_commands(template, variables, cfg.check_lb)
    log.info("Generated %d command(s)", len(lines))

    if cfg.dry_run:
        for line in lines:
            print(CommandRecord.from_line(line, DEFAULT_PREFIX).command)
        return 0

    log.info("output to: %s", cfg.output_filepath)
    try:
        writer = ResultWriter(cfg.output_filepath)
    except OSError as exc:
        die(f"Failed to open file {cfg.output_filepath} for writing: {exc}")

    try:
        try:
            check_environment(os.environ)
        except MissingCredentialsError as exc:
            die(str(exc))
        binary = shutil.which(BINARY)
        if binary is None:
            die(f"{BINARY} command not found in PATH")
        log.info("neutron command: %s", binary)

        context = ExecutionContext(env=dict(os.environ), timeout=cfg.timeout)
        probe: Any = CliStatusProbe(context, BINARY)
        if cfg.database is not None:
            try:
                probe = DatabaseStatusProbe(build_engine(cfg.database))
            except (SQLAlchemyError, ValueError) as exc:
                die(f"Failed to connect to database: {exc}")

        gate = ReadinessGate(probe, max_retries=cfg.max_check_times)
        results = ResultLog()
        runner = BatchRunner(
            lines,
            gate,
            context,
            results,
            prefix=DEFAULT_PREFIX,
            pace=cfg.pace,
            post_check=cfg.post_check,
        )

        previous = install_signal_handlers()
        try:
            outcome = runner.run()
            if outcome.aborted:
                log.error(
                    "Batch stopped after %d of %d command(s): %s",
                    len(outcome.records),
                    outcome.total,
                    outcome.abort_reason,
                )
        except BatchInterrupted as exc:
            log.warning("Signal %d received, quit. Partial results are output to %s", exc.signum, cfg.output_filepath)

        try:
            records = results.snapshot()
            writer.write(records)
            print_report(records)
        finally:
            restore_signal_handlers(previous)
    finally:
        writer.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
