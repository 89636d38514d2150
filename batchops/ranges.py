"""
Variable value parsing.

A value spec is a comma-separated list where each token is either a literal
or an inclusive numeric range::

    1-5
    a,b,c
    1-3,4,6-9,a,b,c
"""

from __future__ import annotations

import re
from typing import List

_RANGE_RE = re.compile(r"^(\d+)-(\d+)$")


class RangeError(ValueError):
    """Raised for a numeric range whose start is greater than its end."""


def parse_values(spec: str) -> List[str]:
    """
    Expand a value spec into its ordered list of string values.

    Tokens that do not look like ``<int>-<int>`` are kept as literals, so
    ``"3-"`` stays ``"3-"``. Numbers are rendered without padding.
    """
    if not spec:
        return []

    values: List[str] = []
    for token in spec.split(","):
        match = _RANGE_RE.match(token)
        if not match:
            values.append(token)
            continue
        start, end = int(match.group(1)), int(match.group(2))
        if start > end:
            raise RangeError(f"Invalid range {token!r}: start {start} is greater than end {end}")
        values.extend(str(i) for i in range(start, end + 1))
    return values
