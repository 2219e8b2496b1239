import json
import tempfile
import unittest
from datetime import datetime, timezone
from pathlib import Path

from src.application.harvester_service import HarvesterService
from src.domain.exceptions import FetchException, RateLimitQueryException
from src.domain.models import AccountDescriptor, AccountKind, RateLimitStatus
from src.infrastructure.account_source import StaticAccountSource
from src.infrastructure.file_cache import FileCacheRepository


class _FakeGitHubClient:
    def __init__(self, repositories, failing=(), rate_limit_fails=False) -> None:
        self.repositories = repositories
        self.failing = set(failing)
        self.rate_limit_fails = rate_limit_fails
        self.calls = []

    async def list_repositories(self, session, name, kind):
        self.calls.append((name, kind))
        if name in self.failing:
            raise FetchException(name, "Bad credentials", status=401)
        return [dict(record) if isinstance(record, dict) else record for record in self.repositories.get(name, [])]

    async def get_rate_limit(self, session):
        if self.rate_limit_fails:
            raise RateLimitQueryException("unavailable")
        return RateLimitStatus(
            limit=5000,
            remaining=4321,
            reset_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        )


def _repo(name, owner="acme"):
    return {
        "name": name,
        "html_url": f"https://github.com/{owner}/{name}",
        "owner": {"login": owner},
        "updated_at": "2024-01-02T03:04:05Z",
        "stargazers_count": 1,
    }


class TestHarvesterService(unittest.IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.cache_root = Path(self._tmp.name) / "cache"

    def _service(self, client, accounts) -> HarvesterService:
        return HarvesterService(
            github_client=client,
            cache_repository=FileCacheRepository(self.cache_root),
            account_source=StaticAccountSource(accounts),
        )

    def _cached_names(self, account):
        return sorted(p.stem for p in (self.cache_root / account).glob("*.json"))

    async def test_include_list_limits_cached_repositories(self) -> None:
        client = _FakeGitHubClient({"acme": [_repo("widget"), _repo("gizmo"), _repo("gadget")]})
        accounts = [AccountDescriptor(
            name="acme", kind=AccountKind.ORGANIZATION, include=frozenset({"widget", "gadget"}),
        )]

        summary = await self._service(client, accounts).harvest()

        self.assertEqual(self._cached_names("acme"), ["gadget", "widget"])
        data = json.loads((self.cache_root / "acme" / "widget.json").read_text(encoding="utf-8"))
        self.assertEqual(data["account"], "acme")
        self.assertEqual(data["url"], "https://github.com/acme/widget")
        self.assertEqual(summary.repositories_written, 2)
        self.assertFalse(summary.has_failures)
        self.assertEqual(client.calls, [("acme", AccountKind.ORGANIZATION)])

    async def test_without_include_every_repository_is_cached(self) -> None:
        client = _FakeGitHubClient({"octocat": [_repo("a", "octocat"), _repo("b", "octocat")]})
        accounts = [AccountDescriptor(name="octocat", kind=AccountKind.USER)]

        await self._service(client, accounts).harvest()

        self.assertEqual(self._cached_names("octocat"), ["a", "b"])

    async def test_failed_account_does_not_abort_others(self) -> None:
        client = _FakeGitHubClient({"beta": [_repo("one", "beta")]}, failing={"alpha"})
        accounts = [
            AccountDescriptor(name="alpha", kind=AccountKind.ORGANIZATION),
            AccountDescriptor(name="beta", kind=AccountKind.ORGANIZATION),
        ]

        with self.assertLogs("src.application.harvester_service", level="INFO") as logs:
            summary = await self._service(client, accounts).harvest()

        self.assertFalse((self.cache_root / "alpha").exists())
        self.assertEqual(self._cached_names("beta"), ["one"])
        self.assertEqual(summary.accounts_failed, ["alpha"])
        self.assertEqual(summary.accounts_succeeded, ["beta"])
        self.assertTrue(summary.has_failures)
        self.assertTrue(any("Error fetching repositories for organization alpha" in line for line in logs.output))

    async def test_account_with_no_repositories_writes_nothing(self) -> None:
        client = _FakeGitHubClient({"empty": []})
        accounts = [AccountDescriptor(name="empty", kind=AccountKind.USER)]

        with self.assertLogs("src.application.harvester_service", level="INFO") as logs:
            summary = await self._service(client, accounts).harvest()

        self.assertFalse(self.cache_root.exists())
        self.assertFalse(summary.has_failures)
        self.assertTrue(any("empty has 0 repositories." in line for line in logs.output))

    async def test_rate_limit_is_reported(self) -> None:
        client = _FakeGitHubClient({})

        with self.assertLogs("src.application.harvester_service", level="INFO") as logs:
            await self._service(client, []).harvest()

        self.assertTrue(any("Remaining API calls: 4321/5000" in line for line in logs.output))

    async def test_rate_limit_failure_does_not_affect_outcome(self) -> None:
        client = _FakeGitHubClient({"acme": [_repo("widget")]}, rate_limit_fails=True)
        accounts = [AccountDescriptor(name="acme", kind=AccountKind.ORGANIZATION)]

        with self.assertLogs("src.application.harvester_service", level="ERROR"):
            summary = await self._service(client, accounts).harvest()

        self.assertFalse(summary.has_failures)
        self.assertEqual(self._cached_names("acme"), ["widget"])

    async def test_malformed_record_does_not_abort_batch(self) -> None:
        client = _FakeGitHubClient({
            "alpha": [{"name": None}, "not-a-repository", _repo("good", "alpha")],
            "beta": [_repo("one", "beta")],
        })
        accounts = [
            AccountDescriptor(name="alpha", kind=AccountKind.ORGANIZATION),
            AccountDescriptor(name="beta", kind=AccountKind.ORGANIZATION),
        ]

        with self.assertLogs("src.application.harvester_service", level="ERROR") as logs:
            summary = await self._service(client, accounts).harvest()

        self.assertEqual(self._cached_names("alpha"), ["good"])
        self.assertEqual(self._cached_names("beta"), ["one"])
        self.assertEqual(summary.repositories_written, 2)
        self.assertEqual(summary.repositories_failed, 2)
        self.assertTrue(summary.has_failures)
        self.assertTrue(any("Error normalizing alpha/None" in line for line in logs.output))

    async def test_non_object_record_is_skipped_by_include_filter(self) -> None:
        client = _FakeGitHubClient({"acme": ["garbage", _repo("widget")]})
        accounts = [AccountDescriptor(
            name="acme", kind=AccountKind.ORGANIZATION, include=frozenset({"widget"}),
        )]

        summary = await self._service(client, accounts).harvest()

        self.assertEqual(self._cached_names("acme"), ["widget"])
        self.assertFalse(summary.has_failures)
