import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Union

from pydantic import TypeAdapter, ValidationError

from src.domain.exceptions import AccountSourceException
from src.domain.models import AccountDescriptor, AccountKind

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNTS = [
    AccountDescriptor(
        name="uktrade",
        kind=AccountKind.ORGANIZATION,
        include=frozenset({
            "data-workspace", "pg-bulk-ingest", "stream-zip", "stream-unzip",
            "mbtiles-s3-server", "cypress-image-diff", "mobius3", "data-flow",
        }),
    ),
    AccountDescriptor(
        name="michalporeba",
        kind=AccountKind.USER,
        include=frozenset({"odis", "alps-py", "x-gov-repos", "static-data-publishing"}),
    ),
]

# Short forms accepted in account files.
KIND_ALIASES = {"org": AccountKind.ORGANIZATION.value}

_accounts_adapter = TypeAdapter(List[AccountDescriptor])


class AccountSource(ABC):
    """Produces the accounts whose repositories are harvested."""

    @abstractmethod
    def accounts(self) -> List[AccountDescriptor]:
        ...


class StaticAccountSource(AccountSource):
    """Account list fixed at construction time."""

    def __init__(self, accounts: Iterable[AccountDescriptor] = DEFAULT_ACCOUNTS):
        self._accounts = list(accounts)

    def accounts(self) -> List[AccountDescriptor]:
        return list(self._accounts)


class JsonFileAccountSource(AccountSource):
    """
    Account list read from a JSON file of the form
    [{"name": "acme", "kind": "organization", "include": ["widget"]}, ...].
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def accounts(self) -> List[AccountDescriptor]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise AccountSourceException(f"Cannot read account list {self.path}: {e}") from e

        if not isinstance(raw, list):
            raise AccountSourceException(f"Account list {self.path} must be a JSON array.")

        for entry in raw:
            if isinstance(entry, dict) and entry.get("kind") in KIND_ALIASES:
                entry["kind"] = KIND_ALIASES[entry["kind"]]

        try:
            accounts = _accounts_adapter.validate_python(raw)
        except ValidationError as e:
            raise AccountSourceException(f"Invalid account list {self.path}: {e}") from e

        logger.info(f"Loaded {len(accounts)} accounts from {self.path}.")
        return accounts
