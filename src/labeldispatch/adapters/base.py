import logging
from abc import ABC, abstractmethod
from typing import Any, Iterable

import httpx

from ..errors import MissingCredentialError, ProviderDispatchError, UnsupportedInputTypeError
from ..resolver import ContentResolver
from ..types import (
    DispatchRequest,
    InputType,
    ModelInfo,
    ProviderDescriptor,
    RequestOptions,
)

log = logging.getLogger(__name__)

DEFAULT_INSTRUCTION = "You are a helpful data labeling assistant."
IMAGE_INSTRUCTION = "Analyze this image."
_DEFAULT_TIMEOUT = 120.0  # seconds per backend call
_UNSET: Any = object()


def error_message_from_body(body: Any) -> str | None:
    """Pull the backend's own message out of a decoded error body.

    Handles ``{"error": {"message": ...}}``, an already unwrapped
    ``{"message": ...}`` and Ollama's ``{"error": "..."}``.
    """
    if not isinstance(body, dict):
        return None
    error = body.get("error", body)
    message = None
    if isinstance(error, dict):
        message = error.get("message")
    elif isinstance(error, str):
        message = error
    if message is None:
        message = body.get("message")
    if isinstance(message, str) and message.strip():
        return message
    return None


class ProviderAdapter(ABC):
    """One backend family behind the uniform dispatch contract."""

    provider_id: str = ""
    display_name: str = ""
    requires_api_key: bool = True
    supported_input_types: frozenset[InputType] = frozenset({InputType.TEXT, InputType.IMAGE})

    def __init__(
        self,
        descriptor: ProviderDescriptor | None = None,
        resolver: ContentResolver | None = None,
        base_url: str | None = None,
        timeout: float | None = _DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._descriptor = descriptor
        self._resolver = resolver or ContentResolver(transport=transport)
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    @property
    def descriptor(self) -> ProviderDescriptor:
        if self._descriptor is None:
            return ProviderDescriptor(
                id=self.provider_id,
                name=self.display_name,
                description="",
                requires_api_key=self.requires_api_key,
            )
        return self._descriptor

    @property
    def resolver(self) -> ContentResolver:
        return self._resolver

    async def dispatch(
        self,
        content: str,
        prompt: str | None = None,
        api_key: str | None = None,
        model_id: str | None = None,
        base_url: str | None = None,
        input_type: InputType | str = InputType.TEXT,
        options: RequestOptions | None = None,
        timeout: float | None = _UNSET,
    ) -> str:
        """Send one item; an explicit ``timeout=None`` disables the time limit."""
        if self.requires_api_key:
            self._require_key(api_key)
        request = DispatchRequest(
            content=content,
            prompt=prompt,
            api_key=api_key,
            model_id=model_id,
            base_url=base_url,
            input_type=self._input_type(input_type),
            options=options or RequestOptions(),
            timeout=self._timeout if timeout is _UNSET else timeout,
        )
        self._check_request(request)
        log.debug(
            "Dispatching %s request to %s (model=%s)",
            request.input_type.value,
            self.provider_id,
            request.model_id or "default",
        )
        return await self._dispatch(request)

    async def dispatch_batch(self, contents: Iterable[str], **kwargs) -> list[str]:
        from ..batch import dispatch_batch

        return await dispatch_batch(self, contents, **kwargs)

    async def list_models(
        self, api_key: str | None = None, base_url: str | None = None
    ) -> list[ModelInfo]:
        return [ModelInfo(id=m.id, name=m.name) for m in self.descriptor.models]

    def _input_type(self, value: InputType | str) -> InputType:
        try:
            return InputType(value)
        except ValueError as exc:
            raise UnsupportedInputTypeError(self.provider_id, str(value)) from exc

    def _check_request(self, request: DispatchRequest) -> None:
        if request.input_type not in self.supported_input_types:
            raise UnsupportedInputTypeError(self.provider_id, request.input_type.value)

    def _require_key(self, api_key: str | None) -> str:
        if not api_key:
            raise MissingCredentialError(
                self.provider_id, f"{self.display_name} API key is required"
            )
        return api_key

    def _http_client(self, timeout: float | None) -> httpx.AsyncClient | None:
        """Injected transport for SDK clients; None lets the SDK build its own."""
        if self._transport is None:
            return None
        return httpx.AsyncClient(transport=self._transport, timeout=timeout)

    def _status_error(self, body: Any, status_code: int | None) -> ProviderDispatchError:
        message = error_message_from_body(body) or f"{self.display_name} API Error"
        log.warning("%s returned status %s: %s", self.provider_id, status_code, message)
        return ProviderDispatchError(self.provider_id, message, status_code=status_code)

    @abstractmethod
    async def _dispatch(self, request: DispatchRequest) -> str:
        ...
