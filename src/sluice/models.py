"""Domain models: model capability metadata and canonical stream chunks."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class ServiceTier(BaseModel):
    """A named service-quality class a model may be served under."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str


class ModelInfo(BaseModel):
    """Capability metadata for one model.

    Accepts both snake_case names and the camelCase keys used by model
    registries (``supportsVerbosity``, ``maxTokens``...). Unknown keys such as
    pricing are ignored.

    ``None`` means "not declared". Verbosity is sent only for an explicit
    ``True``; temperature is dropped only for an explicit ``False``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    supports_verbosity: bool | None = Field(default=None, alias="supportsVerbosity")
    supports_temperature: bool | None = Field(
        default=None, alias="supportsTemperature"
    )
    max_tokens: int | None = Field(default=None, alias="maxTokens")
    context_window: int | None = Field(default=None, alias="contextWindow")
    tiers: tuple[ServiceTier, ...] = ()

    def tier_names(self) -> frozenset[str]:
        """Return the declared tier names, skipping empty ones."""
        return frozenset(t.name for t in self.tiers if t.name)


@dataclass(frozen=True)
class Model:
    """A model id paired with its capability metadata."""

    id: str
    info: ModelInfo = field(default_factory=ModelInfo)
    #: Overrides ``info.max_tokens`` when set.
    max_tokens: int | None = None

    @property
    def max_output_tokens(self) -> int | None:
        """Resolved output-token cap, or None when the model declares none."""
        return self.max_tokens or self.info.max_tokens or None


# =============================================================================
# Canonical chunks
# =============================================================================


@dataclass(frozen=True)
class TextChunk:
    """Assistant-visible text."""

    text: str
    type: ClassVar[Literal["text"]] = "text"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **asdict(self)}


@dataclass(frozen=True)
class ReasoningChunk:
    """Reasoning or reasoning-summary text."""

    text: str
    type: ClassVar[Literal["reasoning"]] = "reasoning"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **asdict(self)}


@dataclass(frozen=True)
class UsageChunk:
    """Token accounting reported by the upstream service."""

    input_tokens: int = 0
    output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_write_tokens: int = 0
    total_cost: float = 0
    type: ClassVar[Literal["usage"]] = "usage"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, **asdict(self)}


@dataclass(frozen=True)
class DoneChunk:
    """The upstream response reported completion."""

    type: ClassVar[Literal["done"]] = "done"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}


StreamChunk = Union[TextChunk, ReasoningChunk, UsageChunk, DoneChunk]
