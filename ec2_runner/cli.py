"""Command-line entry point.

Meant to run as a step of a GitHub Actions job: inputs come from
``INPUT_*`` variables, outputs go to ``$GITHUB_OUTPUT`` and the exit code
is 1 if any unit failed.
"""

from __future__ import annotations

import argparse
import asyncio
import os
from collections.abc import Mapping, Sequence

from injector import Injector

from .app import Runtime, RunnerModule
from .config import input_env_name, load_batch, load_settings
from .errors import ConfigError
from .observability.logger import logger
from .observability.logging import LogConfig, setup_logging, teardown_logging
from .output import ActionOutput


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ec2-runner",
        description="Launch or terminate ephemeral EC2 GitHub Actions runners",
    )
    parser.add_argument(
        "action",
        nargs="?",
        choices=["launch", "terminate"],
        help="Overrides the 'action' input",
    )
    parser.add_argument("--log-file", default=None, help="Also write DEBUG logs to this file")
    parser.add_argument("--output", default=None, help="Output file (default: $GITHUB_OUTPUT)")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    args = parse_args(argv)
    env = dict(os.environ if environ is None else environ)
    if args.action:
        env[input_env_name("action")] = args.action

    output = ActionOutput(args.output or env.get("GITHUB_OUTPUT"))

    try:
        settings = load_settings(env)
        batch = load_batch(env, settings.action)
    except ConfigError as e:
        output.fail(str(e))
        return output.exit_code

    handler_ids = setup_logging(LogConfig(level=settings.log_level, file=args.log_file))
    try:
        runtime = Injector([RunnerModule(settings)]).get(Runtime)
        result = asyncio.run(runtime.run(batch))
        output.publish(result)
    except Exception as e:
        logger.exception("Unexpected failure: {error}", error=e)
        output.fail(str(e) or type(e).__name__)
    finally:
        teardown_logging(handler_ids)

    return output.exit_code
