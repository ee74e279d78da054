from __future__ import annotations

import os
from typing import Any


def build_database_url(
    *,
    user: str,
    password: str | None,
    host: str,
    port: str,
    name: str,
) -> str:
    auth = f"{user}:{password}" if password else f"{user}"
    return f"postgresql+asyncpg://{auth}@{host}:{port}/{name}"


def ensure_env_database_url() -> dict[str, Any]:
    """Compose SETTLEBOARD_DATABASE__URL from its parts when it is not set."""
    existing_url = os.getenv("SETTLEBOARD_DATABASE__URL") or os.getenv("DATABASE_URL")
    if existing_url:
        return {"composed": False, "url_already_set": True}

    user = os.getenv("SETTLEBOARD_DATABASE__USER")
    name = os.getenv("SETTLEBOARD_DATABASE__NAME")
    if not (user and name):
        return {"composed": False, "reason": "missing_fields"}

    url = build_database_url(
        user=user,
        password=os.getenv("SETTLEBOARD_DATABASE__PASSWORD") or "",
        host=os.getenv("SETTLEBOARD_DATABASE__HOST") or "127.0.0.1",
        port=os.getenv("SETTLEBOARD_DATABASE__PORT") or "5432",
        name=name,
    )
    os.environ["SETTLEBOARD_DATABASE__URL"] = url
    return {"composed": True, "reason": "missing_url"}


def ensure_config_database_url(core_db: Any) -> dict[str, Any]:
    """Ensure database URL is set on config object."""
    if core_db is None:
        return {"composed": False, "reason": "missing_config"}

    if getattr(core_db, "url", None):
        return {"composed": False, "url_already_set": True}

    host = getattr(core_db, "host", None) or "127.0.0.1"
    port = str(getattr(core_db, "port", None) or 5432)
    user = getattr(core_db, "user", None)
    pwd = getattr(core_db, "password", None) or ""
    name = getattr(core_db, "name", None)
    if user and name:
        url = build_database_url(
            user=user,
            password=pwd,
            host=host,
            port=port,
            name=name,
        )
        setattr(core_db, "url", url)
        return {"composed": True}

    return {"composed": False, "reason": "missing_fields"}


__all__ = [
    "build_database_url",
    "ensure_env_database_url",
    "ensure_config_database_url",
]
