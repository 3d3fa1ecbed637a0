from __future__ import annotations

import sys

from schedlab.cli import main


def run() -> int:
    """Entry point for `python -m schedlab`."""

    return main(sys.argv[1:])


if __name__ == "__main__":
    raise SystemExit(run())
