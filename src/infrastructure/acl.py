from typing import Any, Dict, Iterable, List, Optional, AbstractSet
from src.domain.models import (
    NormalizedRepository,
    RepositoryBlobs,
    RepositoryCounts,
    RepositoryLicense,
    RepositoryProperties,
    RepositoryTimes,
)


def filter_included(
    raw_records: Iterable[Dict[str, Any]],
    include: Optional[AbstractSet[str]],
) -> List[Dict[str, Any]]:
    """Keeps records whose name is in `include`, or every record when no allow-list is set."""
    if include is None:
        return list(raw_records)
    return [
        record for record in raw_records
        if isinstance(record, dict) and record.get('name') in include
    ]


class GitHubTranslator:
    """
    Anti-corruption layer that translates raw GitHub REST repository records into NormalizedRepository instances.
    """

    @staticmethod
    def to_domain(raw_record: Dict[str, Any], account: str) -> NormalizedRepository:
        """
        Transforms a raw GitHub REST repository record into a NormalizedRepository.

        Args:
            raw_record (Dict[str, Any]): One element of a repository listing response.
            account (str): The account the record was listed under.

        Returns:
            NormalizedRepository: The cache representation of the repository.
        """
        if not isinstance(raw_record, dict):
            raise ValueError(f"Expected a repository object, got {type(raw_record).__name__}.")

        name = raw_record.get('name')
        if not name:
            raise ValueError("name is required to build NormalizedRepository.")

        # owner and license may be explicit nulls
        owner_data = raw_record.get('owner') or {}
        license_data = raw_record.get('license') or {}

        return NormalizedRepository(
            account=account,
            name=name,
            url=raw_record.get('html_url'),
            homepage=raw_record.get('homepage'),
            owner=owner_data.get('login'),
            size=raw_record.get('size') or 0,
            top_language=raw_record.get('language'),
            topics=list(raw_record.get('topics') or []),
            times=RepositoryTimes(
                created=raw_record.get('created_at'),
                updated=raw_record.get('updated_at'),
                pushed=raw_record.get('pushed_at'),
            ),
            properties=RepositoryProperties(
                is_archived=bool(raw_record.get('archived')),
                is_disabled=bool(raw_record.get('disabled')),
                is_fork=bool(raw_record.get('fork')),
                is_template=bool(raw_record.get('is_template')),
                has_issues=bool(raw_record.get('has_issues')),
                has_downloads=bool(raw_record.get('has_downloads')),
                has_projects=bool(raw_record.get('has_projects')),
                has_wiki=bool(raw_record.get('has_wiki')),
                has_pages=bool(raw_record.get('has_pages')),
                has_discussions=bool(raw_record.get('has_discussions')),
            ),
            license=RepositoryLicense(
                name=license_data.get('name'),
                url=license_data.get('url'),
            ),
            counts=RepositoryCounts(
                forks=raw_record.get('forks_count') or 0,
                open_issues=raw_record.get('open_issues_count') or 0,
                stargazers=raw_record.get('stargazers_count') or 0,
                watchers=raw_record.get('watchers_count') or 0,
            ),
            blobs=RepositoryBlobs(description=raw_record.get('description')),
        )
