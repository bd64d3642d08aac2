from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class EngineError(Exception):
    """Base error for the association engine.

    Raised to the application-layer caller; the CLI renders ``message``.
    """

    message: str
    resource: str | None = None
    resource_id: Any = None
    cause: Exception | None = None

    def __str__(self) -> str:
        return self.message


@dataclass
class NotFound(EngineError):
    pass


@dataclass
class Forbidden(EngineError):
    pass


@dataclass
class OpportunityLocked(EngineError):
    fields: tuple[str, ...] = ()


@dataclass
class TransactionFailed(EngineError):
    pass
