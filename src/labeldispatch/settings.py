import os
from dataclasses import dataclass, field

_DEFAULT_LOCAL_BASE_URL = "http://localhost:11434"
_DEFAULT_TIMEOUT = 120.0  # seconds per backend call
_ENV_PREFIX = "LABELDISPATCH_"


@dataclass(frozen=True)
class Settings:
    app_origin: str | None = None
    local_base_url: str = _DEFAULT_LOCAL_BASE_URL
    timeout: float | None = _DEFAULT_TIMEOUT
    base_urls: dict[str, str] = field(default_factory=dict)

    def base_url_for(self, provider_id: str) -> str | None:
        if provider_id == "local":
            return self.local_base_url
        return self.base_urls.get(provider_id)


def _parse_timeout(raw: str | None) -> float | None:
    if raw is None or not raw.strip():
        return _DEFAULT_TIMEOUT
    if raw.strip().lower() in ("none", "0", "off"):
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"Invalid {_ENV_PREFIX}TIMEOUT value: {raw!r}") from None


def load_settings(environ: dict | None = None) -> Settings:
    env = os.environ if environ is None else environ

    base_urls: dict[str, str] = {}
    for provider_id in ("openai", "anthropic", "openrouter", "sambanova"):
        value = env.get(f"{_ENV_PREFIX}{provider_id.upper()}_BASE_URL")
        if value:
            base_urls[provider_id] = value

    return Settings(
        app_origin=env.get(f"{_ENV_PREFIX}APP_ORIGIN") or None,
        local_base_url=env.get(f"{_ENV_PREFIX}LOCAL_BASE_URL") or _DEFAULT_LOCAL_BASE_URL,
        timeout=_parse_timeout(env.get(f"{_ENV_PREFIX}TIMEOUT")),
        base_urls=base_urls,
    )
