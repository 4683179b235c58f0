"""Composition root for typewatch.

This module is the ONLY location that imports both core logic and
concrete adapter implementations. All wiring of dependencies happens
here, creating a clear entry point for the application.

Usage:
    python -m typewatch.main path/to/a.test-d.ts [more files...]

Configuration comes from TYPEWATCH_* environment variables or .env.
"""

import asyncio
import logging
import signal
import sys
from collections.abc import Sequence

from typewatch.adapters.collector.file_only import FileOnlyDefinitionCollector
from typewatch.adapters.config.tsconfig import TsconfigAdapter
from typewatch.adapters.process.subprocess_checker import SubprocessCheckerAdapter
from typewatch.adapters.reporting.stdout import StdoutResultReporter
from typewatch.config import Settings, load_settings
from typewatch.core.models import ErrorsCache
from typewatch.core.typechecker import Typechecker


def configure_logging(log_level: str, log_format: str) -> None:
    """Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_format: Log format (json, text).
    """
    level = getattr(logging, log_level, logging.INFO)

    if log_format == "json":
        format_str = '{"time": "%(asctime)s", "level": "%(levelname)s", "message": "%(message)s"}'
    else:
        format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


def build_typechecker(settings: Settings, files: Sequence[str]) -> Typechecker:
    """Wire the default adapters into a Typechecker."""
    return Typechecker(
        options=settings.session_options(),
        files=files,
        process_port=SubprocessCheckerAdapter(),
        config_port=TsconfigAdapter(),
        collector=FileOnlyDefinitionCollector(),
    )


def _setup_signal_handlers(checker: Typechecker) -> None:
    """Stop the session on SIGTERM/SIGINT."""
    logger = logging.getLogger(__name__)
    try:
        loop = asyncio.get_running_loop()

        def _handle_signal(sig: int) -> None:
            logger.info(f"Received signal {sig}, stopping type checker...")
            asyncio.create_task(checker.stop())

        loop.add_signal_handler(signal.SIGTERM, _handle_signal, signal.SIGTERM)
        loop.add_signal_handler(signal.SIGINT, _handle_signal, signal.SIGINT)
    except NotImplementedError:
        # Signal handlers not available on Windows
        logger.debug("Signal handlers not available on this platform")


async def bootstrap(files: Sequence[str]) -> int:
    """Load configuration, wire adapters, and run one session.

    Returns:
        Process exit code: 1 if the last published snapshot has failures.
    """
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_format)
    logger = logging.getLogger(__name__)

    if not files:
        logger.error("No test files given")
        return 2

    checker = build_typechecker(settings, files)
    reporter = StdoutResultReporter(verbose=settings.log_level == "DEBUG")
    checker.on_parse_end(reporter.report)
    checker.on_watcher_rerun(reporter.report_rerun)

    if settings.watch:
        _setup_signal_handlers(checker)

    logger.info(f"Type checking {len(files)} files with {settings.checker}...")
    try:
        await checker.start()
    finally:
        await checker.clean()

    result: ErrorsCache = checker.get_result()
    return 1 if result.has_failures else 0


def main() -> None:
    """Application entry point.

    Exit codes:
        0: No type errors
        1: Type errors reported, or fatal runtime error
        2: Usage error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    logger = logging.getLogger(__name__)
    try:
        sys.exit(asyncio.run(bootstrap(sys.argv[1:])))
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
