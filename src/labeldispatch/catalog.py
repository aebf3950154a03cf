from pathlib import Path

import yaml

from .types import ModelDescriptor, ProviderDescriptor

_DEFAULT_CATALOG = Path(__file__).resolve().parent / "providers.yaml"


def _load_yaml(path: Path) -> dict | list:
    with open(path) as f:
        return yaml.safe_load(f)


def _parse_models(entries: list | None) -> tuple[ModelDescriptor, ...]:
    models: list[ModelDescriptor] = []
    for entry in entries or []:
        model_id = str(entry.get("id", "")).strip()
        if not model_id:
            continue
        models.append(
            ModelDescriptor(
                id=model_id,
                name=entry.get("name", model_id),
                description=entry.get("description", ""),
            )
        )
    return tuple(models)


def load_catalog(path: str | Path | None = None) -> dict[str, ProviderDescriptor]:
    catalog_path = Path(path) if path else _DEFAULT_CATALOG
    if not catalog_path.exists():
        raise FileNotFoundError(f"Provider catalog not found: {catalog_path}")
    data = _load_yaml(catalog_path) or {}

    providers: dict[str, ProviderDescriptor] = {}
    for entry in data.get("providers", []):
        provider_id = str(entry.get("id", "")).strip()
        if not provider_id:
            raise ValueError(f"Provider entry without id in {catalog_path}")
        if provider_id in providers:
            raise ValueError(f"Duplicate provider id '{provider_id}' in {catalog_path}")
        providers[provider_id] = ProviderDescriptor(
            id=provider_id,
            name=entry.get("name", provider_id),
            description=entry.get("description", ""),
            requires_api_key=bool(entry.get("requires_api_key", True)),
            models=_parse_models(entry.get("models")),
        )
    return providers
