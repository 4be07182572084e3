"""Icon alias table and the resolver answering a surface's missing-image signal.

Icons are Maki SVG assets addressed by canonical name under
``ICON_ASSET_PATH_TEMPLATE``. Requested identifiers are first mapped through
``ICON_ALIASES`` so that domain vocabulary (``"roofing"``, ``"lorry"``) lands on
an existing asset; identifiers outside the table are used unchanged.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

import requests
from cachetools import LRUCache
from requests import Session

from .config import (
    ICON_ASSET_PATH_TEMPLATE,
    ICON_ASSET_ROOT,
    ICON_CACHE_SIZE,
    ICON_FETCH_MAX_WORKERS,
    REQUEST_TIMEOUT,
)
from .errors import FieldMapError, ServiceError, ServiceUnavailableError
from .clients.response_handling import check_response_status
from .clients.session import get_default_session
from .surface.base import MapSurface

LOGGER = logging.getLogger(__name__)

__all__ = ["ICON_ALIASES", "IconResolver", "resolve_icon_name"]


ICON_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        # General
        "atm": "bank",
        "bank": "bank",
        "office": "commercial",
        "commercial": "commercial",
        "complex": "residential-community",
        "complexes": "residential-community",
        "apartment": "residential-community",
        "apartments": "residential-community",
        "residential": "residential-community",
        "residential_community": "residential-community",
        "building": "building",
        "buildings": "building",
        "home": "home",
        "house": "home",
        "houses": "home",
        "lift_gate": "lift-gate",
        "lift-gate": "lift-gate",
        "gate": "gate",
        "swimming_pool": "swimming",
        "swimming": "swimming",
        "cycling": "bicycle",
        "bicycle": "bicycle",
        "school": "school",
        "hospital": "hospital",
        "restaurant": "restaurant",
        "park": "park",
        "parking": "parking",
        "warehouse": "warehouse",
        "stadium": "stadium",
        "village": "village",
        "town": "town",
        "city": "city",
        # Roofing
        "roof": "home",
        "roofing": "home",
        "gutter": "building",
        "gutters": "building",
        "tile": "building",
        "tiles": "building",
        "shingle": "building",
        "shingles": "building",
        "sheeting": "building",
        "metal_roof": "building",
        "flat_roof": "building",
        "pitched_roof": "building",
        # Trucking
        "truck": "car",
        "trucking": "car",
        "lorry": "car",
        "semi": "car",
        "trailer": "car",
        "freight": "car",
        "delivery": "car",
        "logistics": "car",
        "transport": "car",
        "transportation": "car",
        "fleet": "car",
        # Construction
        "construction": "construction",
        "site": "construction",
        "yard": "construction",
        "crane": "construction",
        "equipment": "construction",
        "machinery": "construction",
        "excavator": "construction",
        "bulldozer": "construction",
        "dump_truck": "car",
        "cement": "construction",
        "concrete": "construction",
        "scaffolding": "construction",
        "materials": "warehouse",
        "storage": "warehouse",
        "supply": "warehouse",
        "supplies": "warehouse",
    }
)


def resolve_icon_name(icon_id: str, aliases: Mapping[str, str] = ICON_ALIASES) -> str:
    """Return the canonical asset name for ``icon_id``."""

    return aliases.get(icon_id, icon_id)


def _is_http(root: str) -> bool:
    return root.startswith(("http://", "https://"))


class IconResolver:
    """Fetch icon assets and register them on the surface that asked for them.

    Fetches run on an executor so the signalling surface is never blocked.
    Concurrent requests for the same identifier on the same surface share one
    fetch, and asset payloads are kept in a small LRU cache.
    """

    def __init__(
        self,
        *,
        aliases: Mapping[str, str] = ICON_ALIASES,
        asset_root: str = ICON_ASSET_ROOT,
        path_template: str = ICON_ASSET_PATH_TEMPLATE,
        session: Session | None = None,
        executor: Executor | None = None,
        cache_size: int = ICON_CACHE_SIZE,
        timeout: float = REQUEST_TIMEOUT,
    ) -> None:
        self.aliases = aliases
        self.asset_root = asset_root
        self.path_template = path_template
        self.timeout = timeout
        self._session = session or get_default_session()
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max(1, ICON_FETCH_MAX_WORKERS),
            thread_name_prefix="icon-fetch",
        )
        self._cache: LRUCache = LRUCache(maxsize=max(1, cache_size))
        self._lock = threading.RLock()
        self._in_flight: Dict[Tuple[MapSurface, str], Future] = {}

    def resolve(self, icon_id: str) -> str:
        return resolve_icon_name(icon_id, self.aliases)

    def asset_location(self, canonical_name: str) -> str:
        """Return the URL or filesystem path serving ``canonical_name``."""

        relative = self.path_template.format(name=canonical_name)
        if _is_http(self.asset_root):
            return self.asset_root.rstrip("/") + relative
        return str(Path(self.asset_root) / relative.lstrip("/"))

    def attach(self, surface: MapSurface) -> None:
        """Subscribe to ``surface``'s missing-image signal."""

        surface.on_missing_image(
            lambda icon_id: self.handle_missing_image(surface, icon_id)
        )

    def handle_missing_image(self, surface: MapSurface, icon_id: str) -> Future:
        """Schedule fetch-and-register for ``icon_id`` on ``surface``."""

        key = (surface, icon_id)
        with self._lock:
            pending = self._in_flight.get(key)
            if pending is not None:
                return pending
            future = self._executor.submit(self._load_and_register, surface, icon_id)
            self._in_flight[key] = future
        future.add_done_callback(lambda _f: self._forget(key, future))
        return future

    def _forget(self, key: Tuple[MapSurface, str], future: Future) -> None:
        with self._lock:
            if self._in_flight.get(key) is future:
                del self._in_flight[key]

    def _load_and_register(self, surface: MapSurface, icon_id: str) -> bool:
        canonical = self.resolve(icon_id)
        try:
            data = self.fetch_asset(canonical)
            surface.add_image(icon_id, data)
        except (ServiceError, OSError, FieldMapError) as exc:
            LOGGER.debug(
                "Dropping icon %r (asset %r) for surface %s: %s",
                icon_id,
                canonical,
                surface.container_id,
                exc,
            )
            return False
        LOGGER.debug(
            "Registered icon %r (asset %r) on surface %s",
            icon_id,
            canonical,
            surface.container_id,
        )
        return True

    def fetch_asset(self, canonical_name: str) -> bytes:
        """Return the asset bytes for ``canonical_name``.

        Raises:
            ServiceError: When an HTTP asset root cannot serve the asset.
            OSError: When a filesystem asset is missing or unreadable.
        """

        with self._lock:
            cached: Optional[bytes] = self._cache.get(canonical_name)
        if cached is not None:
            return cached
        location = self.asset_location(canonical_name)
        if _is_http(location):
            data = self._fetch_http(location)
        else:
            data = Path(location).read_bytes()
        with self._lock:
            self._cache[canonical_name] = data
        return data

    def _fetch_http(self, url: str) -> bytes:
        try:
            response = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ServiceUnavailableError(f"Icon fetch failed: {exc}") from exc
        check_response_status(response, "Icon fetch")
        return response.content

    def shutdown(self, wait: bool = True) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
