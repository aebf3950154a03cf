import logging

import openai

from ..errors import ProviderDispatchError
from ..types import DispatchRequest, InputType, ModelInfo
from .base import DEFAULT_INSTRUCTION, IMAGE_INSTRUCTION, ProviderAdapter

log = logging.getLogger(__name__)


class ChatCompletionsAdapter(ProviderAdapter):
    """Shared request shaping for backends speaking the chat-completions wire format."""

    default_base_url: str = "https://api.openai.com/v1"
    default_model: str = "gpt-4o-mini"
    fixed_params: dict = {}

    def _resolve_base_url(self, base_url: str | None) -> str:
        return base_url or self._base_url or self.default_base_url

    def _client(self, api_key: str, base_url: str | None, timeout: float | None) -> openai.AsyncOpenAI:
        # Built per call; credentials are request-scoped.
        return openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self._resolve_base_url(base_url),
            timeout=timeout,
            max_retries=0,
            http_client=self._http_client(timeout),
        )

    async def _user_content(self, request: DispatchRequest) -> str | list[dict]:
        if request.input_type == InputType.IMAGE:
            image_url = await self._resolver.resolve(request.content)
            return [
                {"type": "text", "text": IMAGE_INSTRUCTION},
                {"type": "image_url", "image_url": {"url": image_url}},
            ]
        return request.content

    async def _build_messages(self, request: DispatchRequest) -> list[dict]:
        return [
            {"role": "system", "content": request.prompt or DEFAULT_INSTRUCTION},
            {"role": "user", "content": await self._user_content(request)},
        ]

    def _build_call_params(self, request: DispatchRequest, messages: list[dict]) -> dict:
        call_params: dict = {
            "model": request.model_id or self.default_model,
            "messages": messages,
        }
        if request.options.temperature is not None:
            call_params["temperature"] = request.options.temperature
        if request.options.max_tokens is not None:
            call_params["max_tokens"] = request.options.max_tokens
        call_params.update(self.fixed_params)
        return call_params

    def _extract_text(self, response) -> str:
        choices = getattr(response, "choices", None) or []
        if not choices:
            return ""
        message = getattr(choices[0], "message", None)
        if message is None:
            return ""
        return message.content or ""

    async def _dispatch(self, request: DispatchRequest) -> str:
        messages = await self._build_messages(request)
        call_params = self._build_call_params(request, messages)

        try:
            async with self._client(request.api_key, request.base_url, request.timeout) as client:
                response = await client.chat.completions.create(**call_params)
        except openai.APIStatusError as exc:
            raise self._status_error(exc.body, exc.status_code) from exc
        except openai.APIConnectionError as exc:
            log.warning("%s connection failed: %s", self.provider_id, exc)
            raise ProviderDispatchError(
                self.provider_id, f"Failed to reach {self.display_name} API: {exc}"
            ) from exc

        return self._extract_text(response)


class OpenAIAdapter(ChatCompletionsAdapter):
    provider_id = "openai"
    display_name = "OpenAI"

    async def list_models(
        self, api_key: str | None = None, base_url: str | None = None
    ) -> list[ModelInfo]:
        api_key = self._require_key(api_key)
        try:
            async with self._client(api_key, base_url, self._timeout) as client:
                page = await client.models.list()
        except openai.APIStatusError as exc:
            raise self._status_error(exc.body, exc.status_code) from exc
        except openai.APIConnectionError as exc:
            raise ProviderDispatchError(
                self.provider_id, f"Failed to reach {self.display_name} API: {exc}"
            ) from exc

        return [ModelInfo(id=model.id, name=model.id) for model in page.data]
