"""Per-request options for Responses request bodies."""

from __future__ import annotations

from dataclasses import dataclass

from sluice.errors import ConfigurationError


@dataclass(frozen=True)
class Options:
    """Optional request features for `build_request_body()`.

    Fields left unset never appear in the request body.
    """

    #: Ask for ``summary: "auto"`` alongside a reasoning effort.
    enable_reasoning_summary: bool = False
    #: Requested service tier; kept only when the model declares it (or "default").
    service_tier: str | None = None
    #: Sampling temperature; dropped for models that declare no temperature support.
    temperature: float | None = None

    def __post_init__(self) -> None:
        """Validate option shapes early for clear errors."""
        if self.service_tier is not None and (
            not isinstance(self.service_tier, str) or not self.service_tier
        ):
            raise ConfigurationError(
                "service_tier must be a non-empty string",
                hint="Pass service_tier='flex' or service_tier='default'.",
            )

        if self.temperature is not None and (
            isinstance(self.temperature, bool)
            or not isinstance(self.temperature, (int, float))
        ):
            raise ConfigurationError(
                "temperature must be a number",
                hint="Pass temperature=0.7 or leave it unset.",
            )
