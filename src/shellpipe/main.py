"""CLI entry point for running a command pipeline."""

from __future__ import annotations

import argparse
import json
import sys
from contextlib import ExitStack
from pathlib import Path

from loguru import logger

from shellpipe.api import ShellPipe
from shellpipe.config import get_settings
from shellpipe.errors import CommandSyntaxError, EmptyCommandError, ShellPipeError
from shellpipe.utils.logger import setup_logger


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="shellpipe",
        description="Run commands as a pipeline without a shell: each command's stdout feeds the next.",
    )
    parser.add_argument(
        "commands",
        nargs="+",
        metavar="COMMAND",
        help="Command string for one stage, e.g. \"grep -n 'foo bar'\".",
    )
    parser.add_argument(
        "--input",
        default=None,
        help="File fed to the first stage's stdin (default: inherit).",
    )
    parser.add_argument(
        "--output",
        default=None,
        help="File receiving the last stage's stdout (default: inherit).",
    )
    parser.add_argument(
        "--error",
        default=None,
        help="File receiving the last stage's stderr (default: inherit).",
    )
    parser.add_argument(
        "--tokenize",
        action="store_true",
        help="Print each command's arguments as JSON instead of running.",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override the configured log level (e.g. DEBUG).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = get_settings()
    if args.log_level:
        settings = settings.model_copy(update={"log_level": args.log_level.upper()})
    setup_logger(settings)

    runner = ShellPipe(settings=settings)
    try:
        if args.tokenize:
            for command in args.commands:
                print(json.dumps(runner.tokenize(command)))
            return 0

        with ExitStack() as stack:
            source = stack.enter_context(Path(args.input).open("rb")) if args.input else None
            out = stack.enter_context(Path(args.output).open("wb")) if args.output else None
            err = stack.enter_context(Path(args.error).open("wb")) if args.error else None
            result = runner.run(args.commands, input=source, stdout=out, stderr=err)
    except (CommandSyntaxError, EmptyCommandError) as exc:
        print(f"shellpipe: {exc}", file=sys.stderr)
        return 2
    except (ShellPipeError, OSError) as exc:
        logger.error("Pipeline could not run: {}", exc)
        print(f"shellpipe: {exc}", file=sys.stderr)
        return 1

    logger.debug("Stage exit codes: {}", result.stage_exit_codes)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
