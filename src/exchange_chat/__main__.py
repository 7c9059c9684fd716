"""Entrypoint: python -m exchange_chat"""
from __future__ import annotations

import logging

import uvicorn

from exchange_chat.api.middleware.correlation_id import CorrelationIdFilter
from exchange_chat.config import settings


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s",
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(CorrelationIdFilter())

    uvicorn.run(
        "exchange_chat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
