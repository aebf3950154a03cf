"""Provider id -> adapter lookup, populated once and read-only afterwards."""

import logging
from types import MappingProxyType
from typing import Iterable

import httpx

from .adapters.anthropic_adapter import AnthropicAdapter
from .adapters.base import ProviderAdapter
from .adapters.local_adapter import LocalAdapter
from .adapters.openai_adapter import OpenAIAdapter
from .adapters.openrouter_adapter import OpenRouterAdapter
from .adapters.sambanova_adapter import SambaNovaAdapter
from .catalog import load_catalog
from .errors import UnknownProviderError
from .resolver import ContentResolver
from .settings import Settings, load_settings
from .types import ProviderDescriptor

log = logging.getLogger(__name__)

ADAPTER_CLASSES: tuple[type[ProviderAdapter], ...] = (
    OpenAIAdapter,
    AnthropicAdapter,
    OpenRouterAdapter,
    SambaNovaAdapter,
    LocalAdapter,
)


class ProviderRegistry:
    def __init__(self, adapters: Iterable[ProviderAdapter]):
        table: dict[str, ProviderAdapter] = {}
        for adapter in adapters:
            if adapter.provider_id in table:
                raise ValueError(f"Duplicate adapter for provider '{adapter.provider_id}'")
            table[adapter.provider_id] = adapter
        self._adapters = MappingProxyType(table)

    def resolve(self, provider_id: str) -> ProviderAdapter:
        adapter = self._adapters.get(provider_id)
        if adapter is None:
            raise UnknownProviderError(provider_id)
        return adapter

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._adapters

    def provider_ids(self) -> list[str]:
        return list(self._adapters)

    def descriptors(self) -> list[ProviderDescriptor]:
        return [adapter.descriptor for adapter in self._adapters.values()]

    def describe(self, provider_id: str) -> ProviderDescriptor:
        return self.resolve(provider_id).descriptor


def build_registry(
    settings: Settings | None = None,
    catalog: dict[str, ProviderDescriptor] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ProviderRegistry:
    settings = settings or load_settings()
    catalog = load_catalog() if catalog is None else catalog
    resolver = ContentResolver(
        app_origin=settings.app_origin,
        transport=transport,
        timeout=settings.timeout,
    )

    adapters: list[ProviderAdapter] = []
    for adapter_cls in ADAPTER_CLASSES:
        descriptor = catalog.get(adapter_cls.provider_id)
        if descriptor is None:
            raise ValueError(f"Provider catalog has no entry for '{adapter_cls.provider_id}'")
        adapters.append(
            adapter_cls(
                descriptor=descriptor,
                resolver=resolver,
                base_url=settings.base_url_for(adapter_cls.provider_id),
                timeout=settings.timeout,
                transport=transport,
            )
        )

    unknown = sorted(set(catalog) - {cls.provider_id for cls in ADAPTER_CLASSES})
    if unknown:
        log.warning("Ignoring catalog providers without an adapter: %s", ", ".join(unknown))
    return ProviderRegistry(adapters)


_registry: ProviderRegistry | None = None


def get_registry() -> ProviderRegistry:
    global _registry
    if _registry is None:
        _registry = build_registry()
    return _registry


def get_adapter(provider_id: str) -> ProviderAdapter:
    return get_registry().resolve(provider_id)
