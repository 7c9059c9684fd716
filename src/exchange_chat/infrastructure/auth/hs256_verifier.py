from __future__ import annotations

import jwt

from exchange_chat.application.dto.principal import Principal


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        return Principal(
            user_id=int(payload["sub"]),
            name=payload.get("name"),
            roles=payload.get("roles", []),
        )
