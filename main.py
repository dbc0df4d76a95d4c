"""Command-line entry point for launching the DocChat Streamlit UI."""

from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from docchat.config import config
from docchat.providers import get_answer_provider

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from logging import Logger

PROJECT_ROOT = Path(__file__).resolve().parent
DEFAULT_APP = PROJECT_ROOT / "app.py"
PROVIDER_CHOICES = ("groq", "openai", "mock")


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Build the CLI parser and read command-line arguments."""  # noqa: DOC201
    parser = argparse.ArgumentParser(
        description="Launch the DocChat Streamlit web application.",
    )
    parser.add_argument(
        "--app",
        type=Path,
        default=DEFAULT_APP,
        help="Path to the Streamlit script (default: app.py).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8501,
        help="Port for the Streamlit server (default: 8501).",
    )
    parser.add_argument(
        "--address",
        default="localhost",
        help="Bind address for the Streamlit server (default: localhost).",
    )
    parser.add_argument(
        "--provider",
        choices=PROVIDER_CHOICES,
        help="Answer provider to use instead of the key-based default.",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Validate configuration and provider selection, then exit.",
    )
    parser.add_argument(
        "--show",
        dest="headless",
        action="store_false",
        help="Open Streamlit in a browser window instead of headless mode.",
    )
    parser.set_defaults(headless=True)
    return parser.parse_args(argv)


def build_streamlit_command(
    script_path: Path,
    *,
    port: int,
    headless: bool,
    address: str,
) -> list[str]:
    """Construct the streamlit CLI invocation."""  # noqa: DOC201
    return [
        sys.executable,
        "-m",
        "streamlit",
        "run",
        str(script_path),
        "--server.port",
        str(port),
        "--server.address",
        address,
        "--server.headless",
        "true" if headless else "false",
    ]


def build_environment(provider: str | None) -> dict[str, str]:
    """Environment for the Streamlit process, with the provider override applied."""  # noqa: DOC201
    env = dict(os.environ)
    if provider:
        env["ANSWER_PROVIDER"] = provider
    return env


def run_streamlit(
    command: Sequence[str], env: Mapping[str, str], logger: Logger
) -> int:
    """Execute the configured streamlit command and return its exit code."""  # noqa: DOC201
    try:
        result = subprocess.run(
            command,
            check=False,
            cwd=PROJECT_ROOT,
            env=dict(env),
        )
    except KeyboardInterrupt:
        logger.info("DocChat stopped by user")
        return 0
    except OSError:
        logger.exception("Unable to launch Streamlit")
        return 1
    return result.returncode


def main(argv: Sequence[str] | None = None) -> int:
    """Validate configuration and launch the Streamlit UI."""  # noqa: DOC201
    args = parse_args(argv)

    config.setup_logging()
    logger = config.get_logger(__name__)

    try:
        config.validate()
        provider = get_answer_provider(args.provider)
    except ValueError:
        logger.exception("Configuration invalid")
        return 1

    if args.check:
        logger.info("Configuration valid; answers will use %s", provider.name)
        return 0

    script_path = (
        args.app if args.app.is_absolute() else (PROJECT_ROOT / args.app)
    ).resolve()
    if not script_path.exists():
        logger.error("Streamlit script not found: %s", script_path)
        return 1

    logger.info(
        "Starting DocChat at http://%s:%s (headless=%s, provider=%s)",
        args.address,
        args.port,
        args.headless,
        provider.name,
    )

    command = build_streamlit_command(
        script_path,
        port=args.port,
        headless=args.headless,
        address=args.address,
    )

    return_code = run_streamlit(command, build_environment(args.provider), logger)
    if return_code != 0:
        logger.error("Streamlit exited with status %s", return_code)
    return return_code


if __name__ == "__main__":
    sys.exit(main())
