import logging

import httpx

from ..errors import ProviderDispatchError
from ..types import ModelInfo
from .openai_adapter import ChatCompletionsAdapter

log = logging.getLogger(__name__)


def _is_text_model(record: dict) -> bool:
    architecture = record.get("architecture") or {}
    inputs = architecture.get("input_modalities") or []
    outputs = architecture.get("output_modalities") or []
    return "text" in inputs and "text" in outputs


class OpenRouterAdapter(ChatCompletionsAdapter):
    provider_id = "openrouter"
    display_name = "OpenRouter"
    default_base_url = "https://openrouter.ai/api/v1"
    default_model = "openai/gpt-4o-mini"

    async def list_models(
        self, api_key: str | None = None, base_url: str | None = None
    ) -> list[ModelInfo]:
        """List hosted models that take and produce text."""
        api_key = self._require_key(api_key)
        url = f"{self._resolve_base_url(base_url).rstrip('/')}/models"

        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self._timeout) as client:
                response = await client.get(url, headers={"Authorization": f"Bearer {api_key}"})
        except httpx.TransportError as exc:
            raise ProviderDispatchError(
                self.provider_id, f"Failed to reach {self.display_name} API: {exc}"
            ) from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if response.is_error:
            raise self._status_error(payload, response.status_code)

        records = payload.get("data") if isinstance(payload, dict) else None
        models: list[ModelInfo] = []
        for record in records if isinstance(records, list) else []:
            if not isinstance(record, dict) or not record.get("id"):
                continue
            if not _is_text_model(record):
                continue
            models.append(ModelInfo(id=record["id"], name=record.get("name") or record["id"]))
        return models
