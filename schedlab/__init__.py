"""Workflow DAG scheduling engine.

Critical path analysis, list schedulers (greedy, HEFT, CP-HEFT) and
coalition-partition scheduling over a fixed worker pool.

Run from source:

    python -m schedlab --help
"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
