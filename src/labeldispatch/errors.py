"""Error taxonomy for provider dispatch."""


class DispatchError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingCredentialError(DispatchError):
    """A provider that needs an API key was called without one."""

    def __init__(self, provider_id: str, message: str | None = None):
        super().__init__(message or f"{provider_id} API key is required")
        self.provider_id = provider_id


class ContentResolutionError(DispatchError):
    """The image source could not be fetched or read."""

    def __init__(self, reference: str, message: str | None = None):
        super().__init__(message or f"Failed to load image: {reference}")
        self.reference = reference


class InvalidPayloadError(DispatchError):
    """A resolved payload is not a base64 data URL with a media type."""


class UnknownProviderError(DispatchError):
    def __init__(self, provider_id: str):
        super().__init__(f"Provider {provider_id} not found")
        self.provider_id = provider_id


class UnsupportedInputTypeError(DispatchError):
    def __init__(self, provider_id: str, input_type: str):
        super().__init__(f"{provider_id} does not support {input_type} input")
        self.provider_id = provider_id
        self.input_type = input_type


class ProviderDispatchError(DispatchError):
    """The backend rejected the request or could not be reached."""

    def __init__(self, provider_id: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.provider_id = provider_id
        self.status_code = status_code
