import asyncio
import os
import sys
import logging
from dotenv import load_dotenv

from src.infrastructure.github_client import GitHubRestClient
from src.infrastructure.file_cache import FileCacheRepository
from src.infrastructure.account_source import JsonFileAccountSource, StaticAccountSource
from src.application.harvester_service import HarvesterService
from src.domain.exceptions import AccountSourceException

DEFAULT_CACHE_ROOT = "_data/repositories"

logger = logging.getLogger(__name__)

def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

async def main() -> int:
    # Load environment variables from .env file
    load_dotenv()
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    github_token = os.getenv("GITHUB_TOKEN")
    cache_root = os.getenv("CACHE_ROOT", DEFAULT_CACHE_ROOT)
    accounts_file = os.getenv("ACCOUNTS_FILE")

    if not github_token:
        logger.warning("GITHUB_TOKEN is not set; requests will be unauthenticated.")

    account_source = JsonFileAccountSource(accounts_file) if accounts_file else StaticAccountSource()

    harvester_service = HarvesterService(
        github_client=GitHubRestClient(token=github_token),
        cache_repository=FileCacheRepository(cache_root),
        account_source=account_source,
    )

    try:
        summary = await harvester_service.harvest()
    except AccountSourceException as e:
        logger.error(str(e))
        return 1

    if summary.has_failures:
        logger.warning("Harvest finished with failures; see the log above for details.")
        return 1
    return 0

def run() -> None:
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Harvest interrupted by user. Exiting.")
        exit_code = 130
    except Exception as e:
        logger.exception(f"An unexpected error occurred: {e}")
        exit_code = 1
    sys.exit(exit_code)

if __name__ == "__main__":
    run()
