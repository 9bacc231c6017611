from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path

# Make sure the 'src' directory is on sys.path so 'gyrolog' can be imported
REPO_ROOT = Path(__file__).resolve().parent
SRC_DIR = REPO_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from gyrolog.cli import main as run_logger_main


def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point for the gyro logger when run from a source checkout.

    Parameters
    ----------
    argv:
        Command-line arguments (without the program name). If None, uses sys.argv.
    """
    if argv is None:
        argv = sys.argv[1:]
    return run_logger_main(list(argv))


if __name__ == "__main__":
    sys.exit(main())
