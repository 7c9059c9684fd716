from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ToastKind(StrEnum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Toast:
    kind: ToastKind
    text: str
    room_id: str | None = None
    session_id: str | None = None
