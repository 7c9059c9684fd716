from __future__ import annotations

from typing import Awaitable, Callable, Protocol


class Socket(Protocol):
    """Bidirectional text channel. ``recv`` raises ``TransportError`` once closed."""

    async def send(self, raw: str) -> None: ...
    async def recv(self) -> str: ...
    async def close(self) -> None: ...


SocketFactory = Callable[[str], Awaitable[Socket]]
