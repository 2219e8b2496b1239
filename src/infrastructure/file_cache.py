import asyncio
import logging
from pathlib import Path
from typing import List, Sequence, Union

from src.domain.exceptions import CacheWriteException
from src.domain.models import NormalizedRepository, WriteOutcome

logger = logging.getLogger(__name__)


class FileCacheRepository:
    """
    Flat file cache of normalized repositories.
    Each record lives at <cache_root>/<account>/<name>.json and is overwritten on every write.
    Stale entries are never removed.
    """

    def __init__(self, cache_root: Union[str, Path]):
        self.cache_root = Path(cache_root)

    def path_for(self, account: str, name: str) -> Path:
        return self.cache_root / account / f"{name}.json"

    def _write_sync(self, record: NormalizedRepository) -> Path:
        path = self.path_for(record.account, record.name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(record.to_json(), encoding="utf-8")
        return path

    async def write(self, record: NormalizedRepository) -> Path:
        """
        Persists a single record, creating the account directory when needed.

        Raises:
            CacheWriteException: If the directory or the file cannot be written.
        """
        try:
            path = await asyncio.to_thread(self._write_sync, record)
        except OSError as e:
            raise CacheWriteException(record.account, record.name, str(e)) from e

        logger.info(f"Cached {record.account}/{record.name}.")
        return path

    async def write_many(self, records: Sequence[NormalizedRepository]) -> List[WriteOutcome]:
        """
        Writes all records concurrently. A failed write is logged and reported in its
        outcome; it never cancels the others.
        """
        results = await asyncio.gather(*(self.write(record) for record in records), return_exceptions=True)

        outcomes: List[WriteOutcome] = []
        for record, result in zip(records, results):
            if isinstance(result, BaseException):
                logger.error(f"Error caching {record.account}/{record.name}: {result}")
                outcomes.append(WriteOutcome(account=record.account, name=record.name, error=str(result)))
            else:
                outcomes.append(WriteOutcome(account=record.account, name=record.name, path=str(result)))
        return outcomes

    def read(self, account: str, name: str) -> NormalizedRepository:
        """Loads a previously cached record."""
        return NormalizedRepository.model_validate_json(
            self.path_for(account, name).read_text(encoding="utf-8")
        )
