from datetime import datetime
from enum import Enum
from typing import FrozenSet, List, Optional
from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel

# Bumped whenever the cached file layout changes.
SCHEMA_VERSION = 1


class AccountKind(str, Enum):
    ORGANIZATION = "organization"
    USER = "user"


class AccountDescriptor(BaseModel):
    """
    An organization or user whose repositories are harvested.
    `include` restricts the harvest to the named repositories; None means all.
    """
    model_config = ConfigDict(frozen=True)

    name: str = Field(
        ..., pattern=r"^[A-Za-z0-9][A-Za-z0-9-]*$", description="Login of the account",
    )
    kind: AccountKind = Field(..., description="Whether the account is an organization or a user")
    include: Optional[FrozenSet[str]] = Field(
        default=None,
        description="Allow-list of repository names; None keeps every repository",
    )


class _CachedModel(BaseModel):
    # Cached files use camelCase keys; Python code uses snake_case.
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class RepositoryTimes(_CachedModel):
    created: Optional[datetime] = None
    updated: Optional[datetime] = None
    pushed: Optional[datetime] = None


class RepositoryProperties(_CachedModel):
    is_archived: bool = False
    is_disabled: bool = False
    is_fork: bool = False
    is_template: bool = False
    has_issues: bool = False
    has_downloads: bool = False
    has_projects: bool = False
    has_wiki: bool = False
    has_pages: bool = False
    has_discussions: bool = False


class RepositoryLicense(_CachedModel):
    name: Optional[str] = None
    url: Optional[str] = None


class RepositoryCounts(_CachedModel):
    forks: int = Field(0, ge=0)
    open_issues: int = Field(0, ge=0)
    stargazers: int = Field(0, ge=0)
    watchers: int = Field(0, ge=0)


class RepositoryBlobs(_CachedModel):
    description: Optional[str] = None


class NormalizedRepository(_CachedModel):
    """
    Account-agnostic view of one repository, as written to the cache.
    (account, name) is the cache key.
    """
    schema_version: int = SCHEMA_VERSION
    account: str = Field(..., pattern=r"^[A-Za-z0-9][A-Za-z0-9-]*$")
    # No path separators: the name becomes a file name in the cache.
    name: str = Field(..., pattern=r"^[A-Za-z0-9._-]+$")
    url: Optional[str] = None
    homepage: Optional[str] = None
    owner: Optional[str] = None
    size: int = Field(0, ge=0)
    top_language: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    times: RepositoryTimes = Field(default_factory=RepositoryTimes)
    properties: RepositoryProperties = Field(default_factory=RepositoryProperties)
    license: RepositoryLicense = Field(default_factory=RepositoryLicense)
    counts: RepositoryCounts = Field(default_factory=RepositoryCounts)
    blobs: RepositoryBlobs = Field(default_factory=RepositoryBlobs)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2) + "\n"


class RateLimitStatus(BaseModel):
    """Core REST quota of the caller, as reported by /rate_limit."""
    model_config = ConfigDict(frozen=True)

    limit: int
    remaining: int
    used: int = 0
    reset_at: datetime


class WriteOutcome(BaseModel):
    """Result of caching a single repository."""
    model_config = ConfigDict(frozen=True)

    account: str
    name: str
    path: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class HarvestSummary(BaseModel):
    """End-of-run tally across all accounts."""
    accounts_succeeded: List[str] = Field(default_factory=list)
    accounts_failed: List[str] = Field(default_factory=list)
    repositories_written: int = 0
    repositories_failed: int = 0

    @property
    def has_failures(self) -> bool:
        return bool(self.accounts_failed) or self.repositories_failed > 0
