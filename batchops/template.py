"""
Command template parsing and cross-product expansion.

A template holds zero or more ``%{name}`` markers. Expansion resolves the
placeholders in order of first appearance: the earliest one is the outer loop
and the last one varies fastest. Every occurrence of a name gets the same
value within one generated command.
"""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass
from typing import Dict, List, Mapping, Sequence, Tuple, Union

PLACEHOLDER_RE = re.compile(r"%\{([a-zA-Z_][a-zA-Z0-9_]*)\}")


@dataclass(frozen=True)
class Literal:
    text: str


@dataclass(frozen=True)
class Placeholder:
    name: str


Segment = Union[Literal, Placeholder]


def parse_template(template: str) -> Tuple[Segment, ...]:
    """Split a template into literal and placeholder segments."""
    segments: List[Segment] = []
    pos = 0
    for match in PLACEHOLDER_RE.finditer(template):
        if match.start() > pos:
            segments.append(Literal(template[pos:match.start()]))
        segments.append(Placeholder(match.group(1)))
        pos = match.end()
    if pos < len(template):
        segments.append(Literal(template[pos:]))
    return tuple(segments)


def placeholder_names(template: str) -> List[str]:
    """Distinct placeholder names in first-occurrence order."""
    names: List[str] = []
    for segment in parse_template(template):
        if isinstance(segment, Placeholder) and segment.name not in names:
            names.append(segment.name)
    return names


def expand(template: str, variables: Mapping[str, Sequence[str]]) -> List[str]:
    """
    Generate every fully substituted command for ``template``.

    The result length is the product of the value counts of the distinct
    placeholders present. A placeholder with no values (or no entry in
    ``variables``) produces no commands at all. Substituted values are not
    scanned for further markers.
    """
    segments = parse_template(template)
    names = placeholder_names(template)
    if not names:
        return [template]

    pools = [list(variables.get(name, ())) for name in names]
    commands: List[str] = []
    for combo in itertools.product(*pools):
        binding: Dict[str, str] = dict(zip(names, combo))
        commands.append("".join(
            seg.text if isinstance(seg, Literal) else binding[seg.name]
            for seg in segments
        ))
    return commands
