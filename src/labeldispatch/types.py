from dataclasses import dataclass, field
from enum import Enum


class InputType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"


@dataclass(frozen=True)
class RequestOptions:
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass(frozen=True)
class DispatchRequest:
    """One single-turn exchange, built inside ``dispatch`` and never kept."""

    content: str
    prompt: str | None = None
    api_key: str | None = None
    model_id: str | None = None
    base_url: str | None = None
    input_type: InputType = InputType.TEXT
    options: RequestOptions = field(default_factory=RequestOptions)
    timeout: float | None = None


@dataclass(frozen=True)
class ModelDescriptor:
    id: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class ProviderDescriptor:
    id: str
    name: str
    description: str
    requires_api_key: bool
    models: tuple[ModelDescriptor, ...] = ()


@dataclass(frozen=True)
class ModelInfo:
    id: str
    name: str


@dataclass
class BatchItemResult:
    index: int
    content: str
    text: str | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
