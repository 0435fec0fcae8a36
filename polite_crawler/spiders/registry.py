from __future__ import annotations

import logging
from typing import Dict, List, Type
from importlib import metadata

from .base import Spider
from .links import LinkSpider
from .sfs import SfsSpider
from ..errors import ConfigError
from ..utils.loader import load_symbol

logger = logging.getLogger(__name__)


class SpiderRegistry:
    """
    Registry of available spider classes.
    Supports built-ins, dotted class paths, and entry-point plugins.
    """
    def __init__(self) -> None:
        self._spiders: Dict[str, Type[Spider]] = {}
        for spider_cls in (SfsSpider, LinkSpider):
            self.register(spider_cls)

    # ---- Introspection / Management ----

    def register(self, spider_cls: Type[Spider]) -> None:
        if not (isinstance(spider_cls, type) and issubclass(spider_cls, Spider)):
            raise ConfigError(f"{spider_cls!r} is not a Spider subclass")
        self._spiders[spider_cls.name] = spider_cls

    @property
    def names(self) -> List[str]:
        return sorted(self._spiders)

    def get(self, name: str) -> Type[Spider]:
        try:
            return self._spiders[name]
        except KeyError:
            raise ConfigError(f"unknown spider {name!r}; available: {', '.join(self.names)}") from None

    def resolve(self, name_or_dotted: str) -> Type[Spider]:
        """Look up a registered name, falling back to a dotted class path."""
        if name_or_dotted in self._spiders:
            return self._spiders[name_or_dotted]
        if ":" not in name_or_dotted and "." not in name_or_dotted:
            return self.get(name_or_dotted)
        spider_cls = load_symbol(name_or_dotted)
        self.register(spider_cls)
        return spider_cls

    # ---- Discovery ----

    def discover_entry_points(self, group: str = "polite_crawler.spiders") -> int:
        """
        Discover third-party spiders installed as entry points.
        Returns count of newly registered spiders.
        """
        added = 0
        for ep in metadata.entry_points().select(group=group):
            try:
                self.register(ep.load())
            except Exception as exc:
                # Plugins are optional; a broken one must not take the CLI down.
                logger.warning("Failed to load spider entry point %s: %r", ep.name, exc)
                continue
            added += 1
        return added
