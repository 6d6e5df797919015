import asyncio
import sys

import structlog

from .core.orchestrator import ActivityOrchestrator
from .utils.config import build_settings, load_config
from .utils.logging import setup_logging


# Main application entry point
async def main() -> int:
    config = load_config()
    setup_logging(config)

    logger = structlog.get_logger(__name__)

    orchestrator = ActivityOrchestrator(build_settings(config))
    report = await orchestrator.run()
    if not report.success:
        logger.error("Fatal error", error=report.summary())
        return 1

    logger.info(report.summary())
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
