import logging

import httpx

from ..errors import InvalidPayloadError, ProviderDispatchError
from ..resolver import split_data_url
from ..types import DispatchRequest, InputType
from .base import DEFAULT_INSTRUCTION, ProviderAdapter

log = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "http://localhost:11434"
_DEFAULT_MODEL = "llama3"
_GENERATE_PATH = "/api/generate"
_IMAGE_PROMPT = "Describe this image"


class LocalAdapter(ProviderAdapter):
    """Self-hosted Ollama-style server: single-shot generate, no credential."""

    provider_id = "local"
    display_name = "Local"
    requires_api_key = False

    def endpoint(self, base_url: str | None = None) -> str:
        root = (base_url or self._base_url or _DEFAULT_BASE_URL).rstrip("/")
        return f"{root}{_GENERATE_PATH}"

    async def _build_body(self, request: DispatchRequest) -> dict:
        body: dict = {
            "model": request.model_id or _DEFAULT_MODEL,
            "stream": False,
        }

        if request.input_type == InputType.IMAGE:
            payload = await self._resolver.resolve(request.content, inline=True)
            parts = split_data_url(payload)
            if parts is None:
                raise InvalidPayloadError("Invalid image data URL")
            body["prompt"] = request.prompt or _IMAGE_PROMPT
            body["images"] = [parts[1]]
        else:
            instruction = request.prompt or DEFAULT_INSTRUCTION
            body["prompt"] = f"{instruction}\n\nText to analyze:\n{request.content}"

        options: dict = {}
        if request.options.temperature is not None:
            options["temperature"] = request.options.temperature
        if request.options.max_tokens is not None:
            options["num_predict"] = request.options.max_tokens
        if options:
            body["options"] = options
        return body

    async def _dispatch(self, request: DispatchRequest) -> str:
        url = self.endpoint(request.base_url)
        body = await self._build_body(request)

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=request.timeout) as client:
                response = await client.post(url, json=body)
        except httpx.TimeoutException as exc:
            raise ProviderDispatchError(
                self.provider_id, f"Local model server at {url} timed out."
            ) from exc
        except httpx.TransportError as exc:
            log.warning("local model server unreachable at %s: %s", url, exc)
            raise ProviderDispatchError(
                self.provider_id,
                f"Failed to connect to local model server at {url}. Make sure it is running.",
            ) from exc

        try:
            data = response.json()
        except ValueError:
            data = None

        if response.is_error:
            raise self._status_error(data, response.status_code)
        if not isinstance(data, dict):
            raise ProviderDispatchError(
                self.provider_id,
                f"{self.display_name} API returned an unreadable response",
                status_code=response.status_code,
            )
        return data.get("response") or ""
