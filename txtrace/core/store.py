from __future__ import annotations

from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import make_url

from txtrace.config.schemas import StoreConfig


def create_store_engine(config: StoreConfig) -> Engine:
    """Build the pooled engine shared by every fetch subtask.

    Each gateway call checks out its own connection, so the pool must be at
    least as large as the number of concurrent subtasks to avoid queueing on
    ``pool_timeout``.
    """
    url = make_url(config.url)
    options: dict[str, Any] = {"echo": config.echo, "pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        # pool class depends on file vs memory database; sizing is left to the dialect
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
        )
    return create_engine(url, **options)
