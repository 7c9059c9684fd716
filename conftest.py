"""Root conftest: applies .env.test before exchange_chat.config is imported."""
from __future__ import annotations

import os
from pathlib import Path

ENV_FILE = Path(__file__).with_name(".env.test")


def _load_env(path: Path) -> None:
    if not path.is_file():
        return
    for raw in path.read_text().splitlines():
        key, sep, value = raw.partition("=")
        if not sep or raw.lstrip().startswith("#"):
            continue
        os.environ.setdefault(key.strip(), value.strip())


_load_env(ENV_FILE)
