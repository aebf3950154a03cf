import logging

import anthropic

from ..errors import InvalidPayloadError, ProviderDispatchError
from ..resolver import split_data_url
from ..types import DispatchRequest, InputType, ModelInfo
from .base import DEFAULT_INSTRUCTION, IMAGE_INSTRUCTION, ProviderAdapter

log = logging.getLogger(__name__)

_DEFAULT_MODEL = "claude-3-5-sonnet-20240620"
_DEFAULT_MAX_TOKENS = 1024  # Anthropic requires max_tokens


class AnthropicAdapter(ProviderAdapter):
    provider_id = "anthropic"
    display_name = "Anthropic"

    def _client(self, api_key: str, base_url: str | None, timeout: float | None) -> anthropic.AsyncAnthropic:
        kwargs: dict = {
            "api_key": api_key,
            "timeout": timeout,
            "max_retries": 0,
            "http_client": self._http_client(timeout),
        }
        if base_url or self._base_url:
            kwargs["base_url"] = base_url or self._base_url
        return anthropic.AsyncAnthropic(**kwargs)

    async def _user_content(self, request: DispatchRequest) -> str | list[dict]:
        if request.input_type != InputType.IMAGE:
            return request.content

        # Anthropic only accepts inline base64, so external URLs are fetched too.
        payload = await self._resolver.resolve(request.content, inline=True)
        parts = split_data_url(payload)
        if parts is None:
            raise InvalidPayloadError("Invalid image data URL")
        media_type, data = parts
        if not media_type.startswith("image/"):
            raise InvalidPayloadError(f"Image payload has no image media type: {media_type}")
        return [
            {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": data}},
            {"type": "text", "text": IMAGE_INSTRUCTION},
        ]

    def _build_call_params(self, request: DispatchRequest, messages: list[dict]) -> dict:
        max_tokens = request.options.max_tokens
        call_params: dict = {
            "model": request.model_id or _DEFAULT_MODEL,
            "max_tokens": _DEFAULT_MAX_TOKENS if max_tokens is None else max_tokens,
            "system": request.prompt or DEFAULT_INSTRUCTION,
            "messages": messages,
        }
        if request.options.temperature is not None:
            call_params["temperature"] = request.options.temperature
        return call_params

    def _extract_text(self, response) -> str:
        """Extract text from response content blocks."""
        for block in getattr(response, "content", None) or []:
            if block.type == "text":
                return block.text or ""
        return ""

    async def _dispatch(self, request: DispatchRequest) -> str:
        messages = [{"role": "user", "content": await self._user_content(request)}]
        call_params = self._build_call_params(request, messages)

        try:
            async with self._client(request.api_key, request.base_url, request.timeout) as client:
                response = await client.messages.create(**call_params)
        except anthropic.APIStatusError as exc:
            raise self._status_error(exc.body, exc.status_code) from exc
        except anthropic.APIConnectionError as exc:
            log.warning("anthropic connection failed: %s", exc)
            raise ProviderDispatchError(
                self.provider_id, f"Failed to reach {self.display_name} API: {exc}"
            ) from exc

        return self._extract_text(response)

    async def list_models(
        self, api_key: str | None = None, base_url: str | None = None
    ) -> list[ModelInfo]:
        api_key = self._require_key(api_key)
        try:
            async with self._client(api_key, base_url, self._timeout) as client:
                page = await client.models.list()
        except anthropic.APIStatusError as exc:
            raise self._status_error(exc.body, exc.status_code) from exc
        except anthropic.APIConnectionError as exc:
            raise ProviderDispatchError(
                self.provider_id, f"Failed to reach {self.display_name} API: {exc}"
            ) from exc

        return [
            ModelInfo(id=model.id, name=getattr(model, "display_name", None) or model.id)
            for model in page.data
        ]
