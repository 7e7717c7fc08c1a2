"""CLI entry point."""

import asyncio
import os
import sys

from common.logging_config import setup_logging
from cli.repl import repl_loop


def main() -> None:
    """Entry point for CLI."""
    log_level = 'DEBUG' if '--debug' in sys.argv else os.getenv('LOG_LEVEL', 'WARNING')

    logger = setup_logging('ferry', log_level=log_level)

    if '--debug' in sys.argv:
        logger.info("Debug logging enabled")
        sys.argv.remove('--debug')

    logger.info("Ferry starting...")
    try:
        asyncio.run(repl_loop())
    except Exception as e:
        logger.error(f"Ferry error: {e}", exc_info=True)
        raise
    finally:
        logger.info("Ferry exiting")


if __name__ == "__main__":
    main()
