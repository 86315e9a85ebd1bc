"""Configuration loader for slugs.toml."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .core.settings import SlugSettings
from .core.validate import DEFAULT_RESERVED

MEMORY_DB = ":memory:"


@dataclass
class StoreConfig:
    """Record store configuration."""
    db: Path | str = Path(".slugs/records.sqlite")

    @property
    def in_memory(self) -> bool:
        return str(self.db) == MEMORY_DB


@dataclass
class SlugConfig:
    """Slug generation configuration."""
    kind: str = "service"
    max_length: int = 100
    max_attempts: int = 1000
    persist_retries: int = 3
    fallback: str = "service"
    suffix_bytes: int = 3
    reserved: frozenset[str] = DEFAULT_RESERVED

    def settings(self) -> SlugSettings:
        return SlugSettings(
            max_length=self.max_length,
            max_attempts=self.max_attempts,
            persist_retries=self.persist_retries,
            fallback=self.fallback,
            reserved=self.reserved,
        )


@dataclass
class SitemapRoute:
    """Where records of one kind live on the site."""
    path: str
    priority: float = 0.5
    changefreq: str = "weekly"


def _default_routes() -> dict[str, SitemapRoute]:
    return {
        "service": SitemapRoute("service", 0.8),
        "category": SitemapRoute("category", 0.7),
        "mechanic": SitemapRoute("mechanic", 0.6),
    }


@dataclass
class SitemapConfig:
    """Sitemap generation configuration."""
    base_url: str = "https://fixup.ge"
    max_urls: int = 50000
    routes: dict[str, SitemapRoute] = field(default_factory=_default_routes)


@dataclass
class SlugsConfig:
    """Complete configuration."""
    store: StoreConfig
    slugs: SlugConfig
    sitemap: SitemapConfig


def load_config(config_path: Path | None = None) -> SlugsConfig:
    """
    Load configuration from slugs.toml.

    Search order:
    1. config_path (if provided)
    2. cwd/slugs.toml

    Args:
        config_path: Explicit path to config file

    Returns:
        SlugsConfig with resolved settings
    """
    toml_data: dict[str, Any] = {}

    search_paths = []
    if config_path:
        search_paths.append(config_path)
    search_paths.append(Path.cwd() / "slugs.toml")

    for path in search_paths:
        if path.exists():
            with open(path, "rb") as f:
                toml_data = tomllib.load(f)
            break

    # Parse store config
    store_data = toml_data.get("store", {})
    db = store_data.get("db")
    if db is None:
        store_config = StoreConfig()
    else:
        store_config = StoreConfig(db=db if db == MEMORY_DB else Path(db))

    # Parse slug config
    slug_data = toml_data.get("slugs", {})
    reserved = frozenset(
        word.lower() for word in slug_data.get("reserved", DEFAULT_RESERVED)
    )
    reserved |= {word.lower() for word in slug_data.get("extra_reserved", [])}

    slug_config = SlugConfig(
        kind=slug_data.get("kind", "service"),
        max_length=int(slug_data.get("max_length", 100)),
        max_attempts=int(slug_data.get("max_attempts", 1000)),
        persist_retries=int(slug_data.get("persist_retries", 3)),
        fallback=slug_data.get("fallback", "service"),
        suffix_bytes=int(slug_data.get("suffix_bytes", 3)),
        reserved=reserved,
    )
    if slug_config.max_length < 8:
        raise ValueError("slugs.max_length must be at least 8")

    # Parse sitemap config
    sitemap_data = toml_data.get("sitemap", {})
    routes = _default_routes()
    for kind, route_data in sitemap_data.get("routes", {}).items():
        routes[kind] = SitemapRoute(
            path=route_data.get("path", kind),
            priority=float(route_data.get("priority", 0.5)),
            changefreq=route_data.get("changefreq", "weekly"),
        )

    sitemap_config = SitemapConfig(
        base_url=sitemap_data.get("base_url", "https://fixup.ge"),
        max_urls=int(sitemap_data.get("max_urls", 50000)),
        routes=routes,
    )

    return SlugsConfig(
        store=store_config,
        slugs=slug_config,
        sitemap=sitemap_config,
    )
