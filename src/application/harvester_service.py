import logging
from typing import Any, Dict, List, Optional

import aiohttp
from pydantic import ValidationError

from src.domain.models import AccountDescriptor, HarvestSummary
from src.infrastructure.account_source import AccountSource
from src.infrastructure.acl import GitHubTranslator, filter_included
from src.infrastructure.file_cache import FileCacheRepository
from src.infrastructure.github_client import GitHubRestClient

logger = logging.getLogger(__name__)

# Limit concurrent connections to the API host
CONNECTOR_LIMIT = 10


class HarvesterService:
    """
    Service responsible for harvesting repository metadata for a list of accounts
    and caching it as one JSON file per repository.

    Accounts are processed one after another. A failure for one account or one
    repository is logged and counted; it never aborts the rest of the run.
    """

    def __init__(
            self,
            github_client: GitHubRestClient,
            cache_repository: FileCacheRepository,
            account_source: AccountSource,
    ):
        self.github_client = github_client
        self.cache_repository = cache_repository
        self.account_source = account_source

    async def harvest(self) -> HarvestSummary:
        """
        Fetches, filters, normalizes and caches the repositories of every account,
        then reports the remaining API quota.
        """
        summary = HarvestSummary()
        accounts = self.account_source.accounts()

        logger.info(f"Starting harvest of {len(accounts)} accounts.")

        async with aiohttp.ClientSession(
            connector=aiohttp.TCPConnector(limit=CONNECTOR_LIMIT),
        ) as session:
            for account in accounts:
                await self._harvest_account(session, account, summary)

            await self._report_rate_limit(session)

        logger.info(
            f"Harvest completed. Accounts: {len(summary.accounts_succeeded)} succeeded, "
            f"{len(summary.accounts_failed)} failed. Repositories: {summary.repositories_written} cached, "
            f"{summary.repositories_failed} failed."
        )
        return summary

    async def _fetch_repositories(
        self, session: aiohttp.ClientSession, account: AccountDescriptor,
    ) -> Optional[List[Dict[str, Any]]]:
        """Fetch one account's repositories; returns None when the fetch fails."""
        try:
            return await self.github_client.list_repositories(session, account.name, account.kind)
        except Exception as e:
            logger.error(f"Error fetching repositories for {account.kind.value} {account.name}: {e}")
            return None

    async def _harvest_account(
        self, session: aiohttp.ClientSession, account: AccountDescriptor, summary: HarvestSummary,
    ) -> None:
        logger.info(f"Processing {account.name}")

        raw_records = await self._fetch_repositories(session, account)
        if raw_records is None:
            summary.accounts_failed.append(account.name)
            raw_records = []
        else:
            summary.accounts_succeeded.append(account.name)

        included = filter_included(raw_records, account.include)
        logger.info(f"{account.name} has {len(included)} repositories.")

        records = []
        for raw in included:
            try:
                records.append(GitHubTranslator.to_domain(raw, account.name))
            except (ValueError, ValidationError) as e:
                repo_name = raw.get('name') if isinstance(raw, dict) else None
                logger.error(f"Error normalizing {account.name}/{repo_name}: {e}")
                summary.repositories_failed += 1

        outcomes = await self.cache_repository.write_many(records)

        written = sum(1 for outcome in outcomes if outcome.ok)
        summary.repositories_written += written
        summary.repositories_failed += len(outcomes) - written

    async def _report_rate_limit(self, session: aiohttp.ClientSession) -> None:
        try:
            status = await self.github_client.get_rate_limit(session)
        except Exception as e:
            logger.error(f"Error fetching rate limit information: {e}")
            return

        logger.info(f"Remaining API calls: {status.remaining}/{status.limit}")
        logger.info(f"Rate limit resets at: {status.reset_at.isoformat()}")
