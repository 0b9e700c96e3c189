"""Run script for `python -m main` from inside `src/`."""

from __future__ import annotations

import sys

# Terminal escape sequences and box drawing need utf-8 on Windows consoles.
if sys.platform == "win32":
    sys.stdout.reconfigure(encoding="utf-8")
    sys.stderr.reconfigure(encoding="utf-8")

from cli.main import run


def main() -> None:
    run()


if __name__ == "__main__":
    main()
