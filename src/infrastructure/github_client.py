import aiohttp
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Tuple

from src.domain.exceptions import FetchException, RateLimitQueryException
from src.domain.models import AccountKind, RateLimitStatus

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
REQUEST_TIMEOUT = aiohttp.ClientTimeout(total=60, connect=10)

# Organizations expose a "public" listing type; users only have all/owner/member.
LISTING_TYPES = {
    AccountKind.ORGANIZATION: "public",
    AccountKind.USER: "owner",
}

class GitHubRestClient:
    """
    Client for the GitHub REST API.
    Handles authentication, repository listing with pagination, and rate limit queries.
    """

    def __init__(self, token: Optional[str] = None, api_url: str = "https://api.github.com"):
        self.headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "repo-harvester",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            self.headers["Authorization"] = f"Bearer {token}"
        self.api_url = api_url.rstrip("/")

    def _listing_url(self, name: str, kind: AccountKind) -> str:
        if kind == AccountKind.ORGANIZATION:
            return f"{self.api_url}/orgs/{name}/repos"
        return f"{self.api_url}/users/{name}/repos"

    async def fetch_page(
        self,
        session: aiohttp.ClientSession,
        account: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Tuple[List[Dict], Optional[str]]:
        """
        Fetches a single page of repositories.

        Returns:
            Tuple of (records, next_page_url). next_page_url is None on the last page.
        """
        try:
            async with session.get(url, params=params, headers=self.headers, timeout=REQUEST_TIMEOUT) as response:
                if response.status != 200:
                    body = await response.text()
                    raise FetchException(account, body[:200] or "empty response", status=response.status)

                records = await response.json()
                next_link = response.links.get("next")
                next_url = str(next_link["url"]) if next_link else None
                return records, next_url

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchException(account, str(e) or type(e).__name__) from e

    async def list_repositories(
        self,
        session: aiohttp.ClientSession,
        name: str,
        kind: AccountKind,
    ) -> List[Dict[str, Any]]:
        """
        Lists every repository of an account, following the Link header until the last page.

        Args:
            session (aiohttp.ClientSession): Open HTTP session.
            name (str): Organization or user login.
            kind (AccountKind): Selects the organization or user listing endpoint.

        Returns:
            List[Dict[str, Any]]: Raw repository records, in API order.

        Raises:
            FetchException: If any page cannot be fetched.
        """
        url: Optional[str] = self._listing_url(name, kind)
        # The next-page URL already carries the query string.
        params: Optional[Dict[str, Any]] = {"type": LISTING_TYPES[kind], "per_page": PAGE_SIZE}
        records: List[Dict[str, Any]] = []
        page = 0

        while url:
            page += 1
            page_records, url = await self.fetch_page(session, name, url, params)
            params = None
            records.extend(page_records)
            logger.debug(f"[{name}] Page {page}: {len(page_records)} repositories.")

        return records

    async def get_rate_limit(self, session: aiohttp.ClientSession) -> RateLimitStatus:
        """Queries the caller's remaining core API quota."""
        try:
            async with session.get(f"{self.api_url}/rate_limit", headers=self.headers, timeout=REQUEST_TIMEOUT) as response:
                if response.status != 200:
                    raise RateLimitQueryException(f"Rate limit query returned HTTP {response.status}.")
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise RateLimitQueryException(f"Rate limit query failed: {e}") from e

        rate = data.get("rate", {})
        return RateLimitStatus(
            limit=rate.get("limit", 0),
            remaining=rate.get("remaining", 0),
            used=rate.get("used", 0),
            reset_at=datetime.fromtimestamp(rate.get("reset", 0), tz=timezone.utc),
        )
