"""
codepilot entry point.

This file handles startup concerns (arg-parsing, env setup, logging), wires the tool registry,
inference client and agent together, and runs the interactive console session.
"""

import argparse
import logging
import sys

from codepilot.agent.agent_loop import Agent
from codepilot.agent.inference import (
    InferenceError,
    load_client,
)
from codepilot.client.cli import (
    ConsoleOutput,
    StdinInput,
)
from codepilot.common import (
    AnsiColors,
    colored_print,
)
from codepilot.config import Settings
from codepilot.tools import ToolRegistry
from codepilot.tools.builtin import register_builtin_tools

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stderr,
    )
    # HTTP client chatter is only useful when debugging
    if numeric > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("openai").setLevel(logging.WARNING)


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Chat with codepilot, a tool-using coding assistant")
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=settings.VERBOSE,
        help="Enable verbose (debug) logging",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    parser.add_argument("--model", default=settings.MODEL, help="Model name (default: %(default)s)")
    parser.add_argument(
        "--reasoning",
        action="store_true",
        default=settings.REASONING_ENABLED,
        help="Drive each message through the step-capped reasoning chain",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=settings.REASONING_MAX_STEPS,
        help="Step budget for the reasoning chain (default: %(default)s)",
    )
    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the codepilot console.

    Returns the process exit code: 0 when the session ends normally, 1 on an inference failure.
    """
    if argv is None:
        argv = sys.argv[1:]

    settings = Settings()
    args = _build_parser(settings).parse_args(argv)

    settings.LOG_LEVEL = "debug" if args.verbose else args.log_level
    settings.MODEL = args.model
    settings.REASONING_ENABLED = args.reasoning
    settings.REASONING_MAX_STEPS = args.max_steps

    _init_logging(settings.LOG_LEVEL)
    logger.debug("Settings: %s", settings.model_dump(exclude={"OPENAI_API_KEY"}))

    registry = ToolRegistry()
    register_builtin_tools(registry, logging.getLogger("codepilot.tools"))

    client = load_client("openai", settings, logger=logging.getLogger("codepilot.inference"))
    agent = Agent(
        client,
        registry,
        config=settings.agent_config(),
        input_source=StdinInput(),
        output=ConsoleOutput(),
        logger=logging.getLogger("codepilot.agent"),
    )

    colored_print("Chat with codepilot (use 'ctrl-c' to quit)", AnsiColors.YELLOW)
    try:
        agent.run()
    except InferenceError as exc:
        colored_print(f"Error: {exc}", AnsiColors.RED)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
