"""
Crypto Risk Guard - Error Taxonomy

Provider failures are raised by the API clients and record builders and are
converted to an absent category at the orchestrator's branch boundary.
"""


class RiskGuardError(Exception):
    """Base class for every error raised by the risk guard."""


class ProviderError(RiskGuardError):
    """A data provider could not deliver a usable record."""

    def __init__(self, provider: str, message: str):
        self.provider = provider
        self.message = message
        super().__init__(f"[{provider}] {message}")


class ProviderUnavailable(ProviderError):
    """Network failure, HTTP error, rate limit exhaustion or missing credentials."""


class MalformedProviderResponse(ProviderError):
    """The provider answered, but the payload is unparseable or lacks required fields."""
