"""Allow `python -m shellpipe` to execute the CLI."""

import sys

from shellpipe.main import main


def run() -> None:
    """Delegate to the CLI entry point and exit with the pipeline's code."""
    sys.exit(main())


if __name__ == "__main__":
    run()
