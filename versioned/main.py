"""Composition root for the versioned test orchestrator.

This module is the ONLY location that imports both core logic and
concrete adapter implementations. All wiring of dependencies happens
here, creating a clear entry point for the application.

Module Structure:
- Configuration loading via config module
- Adapter instantiation
- Suite construction and reporter wiring
- Exit status from the suite's failures
"""

import asyncio
import logging
import sys
from collections.abc import Sequence

from versioned.adapters.registry.npm import NpmRegistryAdapter
from versioned.adapters.reporting.stdout import StdoutReporter
from versioned.adapters.runner.process import RunCommands, make_test_factory
from versioned.config import Settings, load_settings
from versioned.core.suite import Suite


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
            logging.StreamHandler(sys.stdout),
        ],
    )


async def run_suite(settings: Settings, test_folders: Sequence[str]) -> bool:
    """Wire adapters, run one suite and report.

    Returns:
        True if the suite completed without failures.
    """
    logger = logging.getLogger(__name__)

    commands = RunCommands.from_strings(settings.install_command, settings.run_command)
    registry = NpmRegistryAdapter(
        registry_url=settings.registry_url,
        timeout_seconds=settings.registry_timeout_seconds,
    )
    reporter = StdoutReporter(verbose=settings.verbose)

    try:
        suite = Suite(
            test_folders,
            settings.suite_options(),
            registry=registry,
            test_factory=make_test_factory(commands),
        )
        reporter.attach(suite)
        result = await suite.start()
    finally:
        await registry.close()

    if result is None:
        logger.error("Suite did not complete")
        return False

    reporter.summary(result.failures)
    return result.passed


async def bootstrap(argv: Sequence[str]) -> bool:
    """Load configuration, configure logging and run the suite.

    Test folders come from argv, falling back to settings.test_folders.

    Raises:
        SystemExit: If no test folders were given.
    """
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_format)
    logger = logging.getLogger(__name__)

    test_folders = list(argv) or settings.test_folders
    if not test_folders:
        logger.error("No test folders given")
        sys.exit(1)

    logger.info(f"Running {len(test_folders)} test folders")
    return await run_suite(settings, test_folders)


def main() -> None:
    """Application entry point.

    Exit codes:
        0: Every test passed
        1: Test failures or a fatal error
        130: Interrupted by user (SIGINT/KeyboardInterrupt)
    """
    logger = logging.getLogger(__name__)
    try:
        passed = asyncio.run(bootstrap(sys.argv[1:]))
    except KeyboardInterrupt:
        logger.warning("Shutdown requested by user (SIGINT)")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
    sys.exit(0 if passed else 1)


if __name__ == "__main__":
    main()
