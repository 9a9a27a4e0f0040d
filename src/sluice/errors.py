"""Exception hierarchy for Sluice."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator


class SluiceError(Exception):
    """Base exception for all Sluice errors."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint


class ConfigurationError(SluiceError):
    """Configuration or option validation failed."""


class CapabilityError(SluiceError):
    """The native client cannot issue a streaming Responses call.

    Not retryable: the same client will fail the same way every time.
    """


class APIError(SluiceError):
    """Upstream call failed.

    Retry metadata is attached so an outer retry policy can decide without
    brittle substring matching. No retries happen inside Sluice.
    """

    def __init__(
        self,
        message: str,
        *,
        hint: str | None = None,
        retryable: bool | None = None,
        status_code: int | None = None,
        provider: str | None = None,
        phase: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.retryable = retryable
        self.status_code = status_code
        self.provider = provider
        self.phase = phase


class TransportError(APIError):
    """The HTTP streaming request failed (non-2xx status or network error)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        status_text: str | None = None,
        body: str | None = None,
        hint: str | None = None,
        retryable: bool | None = None,
        provider: str | None = "openai",
        phase: str | None = "stream",
    ) -> None:
        super().__init__(
            message,
            hint=hint,
            retryable=retryable,
            status_code=status_code,
            provider=provider,
            phase=phase,
        )
        self.status_text = status_text
        self.body = body


class MalformedEventError(SluiceError):
    """An SSE ``data:`` payload was not a JSON object.

    Recovered inside the decoder; never surfaces to callers.
    """


class MalformedArgumentsError(SluiceError):
    """Accumulated function-call arguments were not a JSON object.

    Recovered inside the normalizer; never surfaces to callers.
    """


def _walk_exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield *exc* and its ``__cause__``/``__context__`` chain, cycle-safe."""
    seen: set[int] = set()
    stack: list[BaseException] = [exc]
    while stack:
        cur = stack.pop()
        if id(cur) in seen:
            continue
        seen.add(id(cur))
        yield cur

        cause = cur.__cause__
        if isinstance(cause, BaseException):
            stack.append(cause)
        context = cur.__context__
        if isinstance(context, BaseException):
            stack.append(context)
