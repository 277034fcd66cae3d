"""Tagged outcome of one pipeline run, used to pick the log level."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Succeeded:
    value: Any
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class Cancelled:
    elapsed_ms: float


@dataclass(frozen=True, slots=True)
class Failed:
    error: BaseException
    elapsed_ms: float


type ExecutionOutcome = Succeeded | Cancelled | Failed
