"""
Stream events emitted for one translation session.

Within a session, Delta events arrive in receive order and exactly one
terminal event (Completed or Failed) closes the sequence. Usage, when
present, comes immediately before Completed.
"""

from dataclasses import dataclass
from typing import Optional, Union

from popup_translator.services.errors.classifier import ClassifiedError
from popup_translator.services.session.coordinator import SessionId


@dataclass(frozen=True)
class Delta:
    """Incremental fragment of translated text."""
    text: str


@dataclass(frozen=True)
class Usage:
    """
    Token usage of a finished translation.

    `estimated_cost` (USD) is filled in by the engine from the model's
    pricing; `cache_hit` marks translations served without a network call.
    """
    input_tokens: int
    output_tokens: int
    estimated_cost: float = 0.0
    cache_hit: bool = False


@dataclass(frozen=True)
class Completed:
    pass


@dataclass(frozen=True)
class Failed:
    """
    Terminal failure.

    `reason` is the raw exception; `error` its classification, attached by
    the engine before the event reaches a caller.
    """
    reason: BaseException
    error: Optional[ClassifiedError] = None


StreamEvent = Union[Delta, Usage, Completed, Failed]


def is_terminal(event: StreamEvent) -> bool:
    return isinstance(event, (Completed, Failed))


@dataclass(frozen=True)
class SessionEvent:
    """A stream event tagged with the session that produced it."""
    session: SessionId
    event: StreamEvent
