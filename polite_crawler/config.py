from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import List, Optional, Dict, Any
import os
import json

from .errors import ConfigError
from .version import __version__, CONFIG_SCHEMA_VERSION


@dataclass
class CrawlConfig:
    """
    Canonical configuration object passed throughout the system.
    Keep it dataclass-only (no heavy deps) to stay upgrade-friendly.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    # Registry name ("sfs", "links") or dotted path (module:ClassName)
    spider: str = "sfs"
    # Optional overrides for spiders that accept them
    start_urls: List[str] = field(default_factory=list)
    allowed_domains: Optional[List[str]] = None
    crawling_concurrency: int = 4
    processing_concurrency: int = 2
    # Minimum spacing in seconds between the start of two fetches, across all workers
    min_request_interval: float = 0.5
    item_channel_capacity: int = 100
    # External deadline in seconds; None runs to natural completion
    run_timeout: Optional[float] = None
    request_timeout: float = 15.0
    retries: int = 2
    user_agent: str = f"polite_crawler/{__version__}"
    output_dir: str = "output"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    # ---------- Loaders ----------

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """
        Build config from environment variables (all optional).
        """
        urls = os.getenv("CRAWLER_START_URLS", "")
        start_urls = [u.strip() for u in urls.split(",") if u.strip()]

        allowed = os.getenv("CRAWLER_ALLOWED_DOMAINS", "")
        allowed_domains = [d.strip() for d in allowed.split(",") if d.strip()] or None

        def _get(name: str, default: str) -> str:
            return os.getenv(name, default)

        run_timeout = _get("CRAWLER_RUN_TIMEOUT", "")

        try:
            return cls(
                spider=_get("CRAWLER_SPIDER", "sfs"),
                start_urls=start_urls,
                allowed_domains=allowed_domains,
                crawling_concurrency=int(_get("CRAWLER_CRAWLING_CONCURRENCY", "4")),
                processing_concurrency=int(_get("CRAWLER_PROCESSING_CONCURRENCY", "2")),
                min_request_interval=float(_get("CRAWLER_MIN_REQUEST_INTERVAL", "0.5")),
                item_channel_capacity=int(_get("CRAWLER_ITEM_CHANNEL_CAPACITY", "100")),
                run_timeout=float(run_timeout) if run_timeout else None,
                request_timeout=float(_get("CRAWLER_REQUEST_TIMEOUT", "15.0")),
                retries=int(_get("CRAWLER_RETRIES", "2")),
                user_agent=_get("CRAWLER_USER_AGENT", f"polite_crawler/{__version__}"),
                output_dir=_get("CRAWLER_OUTPUT_DIR", "output"),
            )
        except ValueError as exc:
            raise ConfigError(f"invalid CRAWLER_* environment value: {exc}") from exc

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "CrawlConfig":
        """
        Load configuration from a JSON file. Supports schema migration for older versions.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ConfigError(f"cannot read config file {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a JSON object")
        data = migrate_config(data)
        try:
            return cls(**data)
        except TypeError as exc:
            raise ConfigError(f"invalid config file {path}: {exc}") from exc

    # ---------- Validation ----------

    def validate(self) -> None:
        if self.crawling_concurrency <= 0:
            raise ConfigError("crawling_concurrency must be > 0")
        if self.processing_concurrency <= 0:
            raise ConfigError("processing_concurrency must be > 0")
        if self.min_request_interval < 0:
            raise ConfigError("min_request_interval must be >= 0")
        if self.item_channel_capacity <= 0:
            raise ConfigError("item_channel_capacity must be > 0")
        if self.run_timeout is not None and self.run_timeout <= 0:
            raise ConfigError("run_timeout must be > 0 when set")
        if self.retries < 0:
            raise ConfigError("retries must be >= 0")
        if not self.spider:
            raise ConfigError("spider cannot be empty")


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    schema = raw.get("schema_version", 1)

    if schema < 2:
        # v1 had a single worker pool and a per-request delay
        if "max_concurrency" in raw:
            raw.setdefault("crawling_concurrency", raw.pop("max_concurrency"))
        if "delay" in raw:
            raw.setdefault("min_request_interval", raw.pop("delay"))
        for dropped in ("max_depth", "engine", "exporter", "extra_adapters", "output_path", "keywords"):
            raw.pop(dropped, None)

    raw["schema_version"] = CONFIG_SCHEMA_VERSION
    return raw
