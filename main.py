"""Run the opendota-tui CLI from a source checkout.

`python -m main player 135664392` behaves like the installed
`opendota-tui` script. Packages live under `src/`, which is put on the
import path first when the project is not installed.
"""

from __future__ import annotations

import sys
from pathlib import Path

SRC_DIR = Path(__file__).resolve().parent / "src"


def main() -> None:
    if str(SRC_DIR) not in sys.path:
        sys.path.insert(0, str(SRC_DIR))

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
