"""
Classification of neutron LBaaS subcommands.

``neutron lbaas-member-create ...`` is classified as resource ``member`` and
operation ``create``. Anything without a well-formed ``lbaas-`` token is
``Unclassified``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Union

_SUBCOMMAND_RE = re.compile(r"^lbaas-([a-z0-9]+)-([a-z0-9]+(?:-[a-z0-9]+)*)$")

READ_ONLY_OPERATIONS = frozenset({"show", "list"})
MUTATING_OPERATIONS = frozenset({"create", "update", "delete"})


@dataclass(frozen=True)
class LbaasSubcommand:
    resource: str
    operation: str

    @property
    def verb(self) -> str:
        """First word of the operation: ``list`` for ``list-on-agent``."""
        return self.operation.split("-", 1)[0]

    @property
    def is_read_only(self) -> bool:
        return self.verb in READ_ONLY_OPERATIONS

    @property
    def is_mutating(self) -> bool:
        return self.verb in MUTATING_OPERATIONS


@dataclass(frozen=True)
class Unclassified:
    reason: str

    resource = ""
    operation = ""
    verb = ""
    is_read_only = False
    is_mutating = False


Classification = Union[LbaasSubcommand, Unclassified]


def classify(args: Iterable[str]) -> Classification:
    """Classify a command from its first ``lbaas-`` argument."""
    for arg in args:
        if not arg.startswith("lbaas-"):
            continue
        match = _SUBCOMMAND_RE.match(arg)
        if not match:
            return Unclassified(f"malformed subcommand {arg!r}")
        return LbaasSubcommand(resource=match.group(1), operation=match.group(2))
    return Unclassified("no lbaas- subcommand found")
