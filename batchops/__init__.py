"""
Batch runner for neutron LBaaS v2 commands.
"""

__all__ = [
    "batch",
    "classify",
    "cli",
    "config",
    "gate",
    "ranges",
    "records",
    "report",
    "runner",
    "status",
    "template",
]

__version__ = "0.1.0"
