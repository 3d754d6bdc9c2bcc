#!/usr/bin/env python
from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.logging import RichHandler

from glance import __version__
from glance.cli.progress import ProgressBar, print_debrief
from glance.config.settings import GlanceConfig, load_config
from glance.errors import ConfigurationError, GlanceError, OperationCancelledError
from glance.generator import run, summarize_results
from glance.llm.cancel import CancelToken
from glance.llm.service import GlanceService
from glance.llm.tiers import build_client

logger = logging.getLogger("glance")

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def setup_logging(verbose: bool, console: Optional[Console] = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=verbose,
        markup=False,
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    # Suppress request-level noise from the HTTP stack
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="glance",
        description="Generate a .glance.md summary for every directory in a source tree",
    )
    parser.add_argument("directory", help="Root of the tree to summarise")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Regenerate summaries even if they already exist",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--prompt-file",
        default=None,
        help="Path to a custom prompt template (default: ./prompt.txt or built-in)",
    )
    parser.add_argument("--version", action="version", version=f"glance {__version__}")
    return parser


async def run_glance(config: GlanceConfig, token: CancelToken) -> int:
    """Run one full pass and return the process exit code."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel, "interrupted by user")
    except (NotImplementedError, RuntimeError):
        logger.debug("Signal handlers unavailable; relying on KeyboardInterrupt")

    service = GlanceService(build_client(config), config.prompt_template, model_name=config.model)
    try:
        logger.info("Scanning directories under %s", config.target_dir)
        with ProgressBar() as bar:
            results = await run(
                config,
                service,
                token=token,
                progress=bar.advance,
                on_scan_complete=bar.start,
            )
    finally:
        await service.close()
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.remove_signal_handler(signal.SIGINT)

    summary = summarize_results(results)
    logger.info("All done! Summaries generated up to %s", config.target_dir)
    print_debrief(summary)
    return EXIT_OK if summary.ok else EXIT_FAILURE


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(
            args.directory,
            force=args.force,
            verbose=args.verbose,
            prompt_file=args.prompt_file,
        )
    except ConfigurationError as e:
        logger.error("%s", e)
        return EXIT_FAILURE

    token = CancelToken()
    try:
        return asyncio.run(run_glance(config, token))
    except (OperationCancelledError, KeyboardInterrupt):
        logger.warning("Cancelled; summaries written so far are kept")
        return EXIT_CANCELLED
    except GlanceError as e:
        logger.error("%s", e)
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
