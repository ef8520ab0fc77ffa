"""Exception hierarchy for the harvester."""


class HarvestError(Exception):
    """Base exception for harvest errors."""


class ConfigError(HarvestError):
    """Raised when the run configuration is invalid."""


class MalformedRecord(HarvestError):
    """Raised when a raw record lacks its identifier or title container."""


class UnresolvedDate(HarvestError):
    """Raised when a posted date cannot be determined for a record."""


class ProviderFetchFailure(HarvestError):
    """Raised when paging through a provider API fails."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
