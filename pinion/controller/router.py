"""
Controller Router - First-match router over the route table.

- Every route url is compiled once into a regex at construction.
- Routes are tried in table order; the first verb + pattern match wins.
- Match results (misses included) are cached per ``"<METHOD> <path>"``.
  The route table is immutable, so entries never need invalidation; the
  oldest entry is evicted once the cache is full.
"""

from __future__ import annotations

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern, Sequence, Tuple

from .compiler import RouteInfo

logger = logging.getLogger("pinion.router")

_PARAM_TOKEN = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


def compile_url(url: str) -> Tuple[Pattern[str], List[str]]:
    """
    Compile an Express-style url into a regex and its capture names.

    Literal text is matched case-sensitively, ``:name`` matches one
    non-empty segment and a trailing slash is optional.
    """
    if len(url) > 1 and url.endswith("/"):
        url = url[:-1]
    keys: List[str] = []
    parts: List[str] = []
    position = 0
    for match in _PARAM_TOKEN.finditer(url):
        parts.append(re.escape(url[position:match.start()]))
        parts.append("([^/]+?)")
        keys.append(match.group(1))
        position = match.end()
    parts.append(re.escape(url[position:]))
    body = "".join(parts)
    if body in ("", "/"):
        body = ""
    return re.compile(f"^{body}/?$"), keys


@dataclass(frozen=True)
class RouteMatch:
    """Result of a successful route match."""
    route: RouteInfo
    params: Dict[str, str] = field(default_factory=dict)


@dataclass
class CacheStats:
    """Cache statistics for monitoring."""
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": self.hit_rate,
        }


class _CompiledRoute:
    __slots__ = ("route", "method", "pattern", "keys")

    def __init__(self, route: RouteInfo):
        self.route = route
        self.method = route.method.upper()
        self.pattern, self.keys = compile_url(route.url)


class Router:
    """
    Request matcher.

    Example:
        router = Router(routes)
        match = router.match("GET", "/animal/get/12")
        if match:
            match.route, match.params   # RouteInfo, {"id": "12"}
    """

    def __init__(self, routes: Sequence[RouteInfo], cache_size: int = 1024):
        self.routes: Tuple[RouteInfo, ...] = tuple(routes)
        self._compiled = [_CompiledRoute(route) for route in self.routes]
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, Optional[RouteMatch]]" = OrderedDict()
        self.stats = CacheStats()

    def _find(self, method: str, path: str) -> Optional[RouteMatch]:
        for compiled in self._compiled:
            if compiled.method != method:
                continue
            match = compiled.pattern.match(path)
            if match:
                return RouteMatch(compiled.route, dict(zip(compiled.keys, match.groups())))
        return None

    def match(self, method: str, path: str) -> Optional[RouteMatch]:
        method = method.upper()
        key = f"{method} {path}"
        if key in self._cache:
            self.stats.hits += 1
            return self._cache[key]

        self.stats.misses += 1
        result = self._find(method, path)
        if result:
            logger.debug("Matched %s -> %s", key, result.route.action_name)
        else:
            logger.debug("No route for %s", key)

        if self.cache_size > 0:
            self._cache[key] = result
            if len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
                self.stats.evictions += 1
        return result

    def clear_cache(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self.routes)
