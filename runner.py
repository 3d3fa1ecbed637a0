from __future__ import annotations

"""Repo-root convenience shim for the schedlab CLI.

    python runner.py schedule --workflow wf.json --algorithm heft --workers 3 ...

It delegates to the canonical entry point:

    python -m schedlab
"""

import sys


def main() -> int:
    """Run the schedlab CLI.

    Arguments are forwarded exactly as in `python -m schedlab`.
    """

    from schedlab.__main__ import run

    # Make argv look like the canonical entry point (`python -m schedlab`).
    sys.argv = ["schedlab", *sys.argv[1:]]

    return run()


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
