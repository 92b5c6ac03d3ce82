class CompsError(Exception):
    """
    Base class for pipeline errors. Only ValidationError reaches the caller
    as an HTTP error (400); the rest are recovered inside the pipeline and
    surface as warning strings on a 200 response.
    """


class ValidationError(CompsError):
    """Malformed request (bad ZIP, address too short). Mapped to HTTP 400."""


class ProviderTransportError(CompsError):
    """Network, timeout or protocol failure talking to a provider."""

    def __init__(self, provider: str, message: str = ""):
        self.provider = provider
        self.message = message or "transport error"
        super().__init__(f"{provider}: {self.message}")


class QuotaExceeded(CompsError):
    """The user's monthly ceiling for a meter would be crossed."""

    def __init__(self, vendor: str, limit: int):
        self.vendor = vendor
        self.limit = limit
        super().__init__(f"{vendor} monthly limit ({limit}) reached.")


class ConfigurationError(CompsError):
    """No provider API key is configured at all."""

    def __init__(self, message: str = "No comparable-sales provider API key is configured."):
        super().__init__(message)
