"""
Configuration loading for flexible-cache.

Loads store settings from a YAML file, secrets from environment variables.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Callable, Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator

from flexible_cache.flexible import FlexibleCache
from flexible_cache.stores import MemoryStore, RedisStore, StoreRegistry, ValueStore
from flexible_cache.timestamps import DEFAULT_NAMESPACE

logger = logging.getLogger(__name__)


class StoreConfig(BaseModel):
    """One named backend."""

    name: str
    driver: Literal["memory", "redis"] = "memory"
    url: Optional[str] = None
    prefix: str = ""

    @model_validator(mode="after")
    def validate_redis_url(self) -> "StoreConfig":
        if self.driver == "redis" and not self.url:
            raise ValueError(f"Store '{self.name}' uses the redis driver but has no url")
        return self


class CacheConfig(BaseModel):
    """Cache configuration. Secrets come from env vars, rest from YAML."""

    # Secrets (from environment only)
    redis_password: Optional[str] = None

    namespace: str = DEFAULT_NAMESPACE
    default_store: str = "memory"

    stores: list[StoreConfig] = Field(
        default_factory=lambda: [StoreConfig(name="memory")], min_length=1
    )

    @model_validator(mode="after")
    def validate_stores(self) -> "CacheConfig":
        names = [store.name for store in self.stores]
        duplicates = [n for n in names if names.count(n) > 1]
        if duplicates:
            raise ValueError(f"Duplicate store names: {set(duplicates)}")
        if self.default_store not in names:
            raise ValueError(f"Default store '{self.default_store}' is not configured")
        return self

    def get_store(self, name: str) -> StoreConfig | None:
        """Look up a store config by name."""
        for store in self.stores:
            if store.name == name:
                return store
        return None


def load_config(config_path: str | None = None) -> CacheConfig:
    """
    Load configuration from YAML file + environment variables.

    Args:
        config_path: Path to the YAML file. If None, reads FLEXIBLE_CACHE_CONFIG
                     env var (default: flexible_cache.yaml in current directory).

    Returns:
        Validated CacheConfig instance.
    """
    if config_path is None:
        config_path = os.environ.get("FLEXIBLE_CACHE_CONFIG", "flexible_cache.yaml")

    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if raw is None:
        raw = {}

    # Inject secrets from environment (never from YAML)
    config_data = {
        **raw,
        "redis_password": os.environ.get("REDIS_PASSWORD"),
    }

    config = CacheConfig(**config_data)
    logger.info(
        "Loaded cache config: %d stores, default=%s",
        len(config.stores),
        config.default_store,
    )
    return config


def build_store(
    store: StoreConfig,
    redis_password: Optional[str] = None,
    clock: Callable[[], float] = time.time,
) -> ValueStore:
    if store.driver == "redis":
        return RedisStore.from_url(
            store.url, name=store.name, prefix=store.prefix, password=redis_password
        )
    return MemoryStore(name=store.name, clock=clock)


def build_cache(
    config: CacheConfig, clock: Callable[[], float] = time.time
) -> FlexibleCache:
    """Create the stores named in `config` and a FlexibleCache over them."""
    stores = [build_store(s, config.redis_password, clock) for s in config.stores]
    registry = StoreRegistry(stores, default=config.default_store)
    return FlexibleCache(registry=registry, namespace=config.namespace, clock=clock)


def configure_logging() -> None:
    """Apply LOG_LEVEL (default info) to the root logger."""
    log_level = os.environ.get("LOG_LEVEL", "info").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
