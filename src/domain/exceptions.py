from typing import Optional


class HarvesterException(Exception):
    """Base exception for all harvester-related errors."""
    pass

class FetchException(HarvesterException):
    """Raised when listing the repositories of one account fails."""
    def __init__(self, account: str, message: str, status: Optional[int] = None):
        self.account = account
        self.status = status
        detail = f" (HTTP {status})" if status is not None else ""
        super().__init__(f"Failed to fetch repositories for '{account}'{detail}: {message}")

class CacheWriteException(HarvesterException):
    """Raised when a normalized record cannot be written to the cache."""
    def __init__(self, account: str, name: str, message: str):
        self.account = account
        self.name = name
        super().__init__(f"Failed to cache {account}/{name}: {message}")

class RateLimitQueryException(HarvesterException):
    """Raised when the rate limit status cannot be queried."""
    pass

class AccountSourceException(HarvesterException):
    """Raised when the account list cannot be loaded."""
    pass
