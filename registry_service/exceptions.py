class RegistryError(Exception):
    """Base class for errors surfaced by the registry service."""

    status_code = 500


class ConfigurationError(RegistryError):
    """Required configuration is missing. Fatal at startup."""


class MissingFieldsError(RegistryError):
    status_code = 400

    def __init__(self, fields):
        self.fields = list(fields)
        super().__init__(f"Missing required fields: {', '.join(self.fields)}")


class InvalidRequestError(RegistryError):
    status_code = 400


class NotFoundError(RegistryError):
    status_code = 404


class ConflictError(RegistryError):
    status_code = 409


class StoreUnavailableError(RegistryError):
    status_code = 503


class AIUnavailableError(RegistryError):
    """Raised when AI text generation is requested but no provider key is configured."""

    status_code = 503


class AIProviderError(RegistryError):
    status_code = 502


class AITimeoutError(AIProviderError):
    status_code = 504
