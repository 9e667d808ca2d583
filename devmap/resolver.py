"""Free-text location → map coordinates.

Resolution order for a location string:

1. the session cache (exact, case-sensitive string),
2. the known-place tables from ``places.json`` (metro aliases, then city
   names, then countries / states / provinces),
3. an optional external geocoder,
4. a continent guess, then the fixed default coordinate.

Whatever comes out is cached, so a given string is resolved at most once per
session.
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path

from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from .store import Coordinates

_LOGGER = logging.getLogger("devmap.resolver")

PLACES_PATH = Path(__file__).with_name("places.json")


@dataclass(frozen=True)
class Place:
    name: str
    patterns: tuple
    coordinates: Coordinates


@dataclass(frozen=True)
class PlaceTables:
    metros: tuple
    cities: tuple
    regions: tuple
    continents: tuple
    default: Coordinates


def _coords(entry):
    return Coordinates(float(entry["lat"]), float(entry["lng"]))


def _places(entries, key):
    out = []
    for entry in entries:
        patterns = entry[key]
        if isinstance(patterns, str):
            patterns = [patterns]
        out.append(Place(
            name=entry.get("name") or patterns[0],
            patterns=tuple(p.lower() for p in patterns),
            coordinates=_coords(entry),
        ))
    return tuple(out)


def load_places(path=PLACES_PATH):
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    return PlaceTables(
        metros=_places(raw["metros"], "aliases"),
        cities=_places(raw["cities"], "pattern"),
        regions=_places(raw["regions"], "pattern"),
        continents=_places(raw["continents"], "patterns"),
        default=_coords(raw["default"]),
    )


def load_cache(path):
    """Read a ``{location: [lat, lng]}`` cache file written by one-off-geocode.py.

    ``[null, null]`` entries are kept as explicit misses.
    """
    path = Path(path)
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        raw = json.load(f)
    cache = {}
    for loc, pair in raw.items():
        lat, lng = pair if pair else (None, None)
        cache[loc] = None if lat is None or lng is None else Coordinates(float(lat), float(lng))
    return cache


class LocationResolver:

    def __init__(self, places=None, cache=None, geocoder=None):
        self.places = places or load_places()
        self.cache = dict(cache or {})
        # async callable: str -> object with .latitude/.longitude, or None
        self.geocoder = geocoder
        self.lookups = 0
        self.geocoder_calls = 0
        self._pending = {}

    def cached(self, text):
        return self.cache.get(text)

    def is_cached(self, text):
        return text in self.cache

    def match(self, text):
        """Scan the known-place tables; ``None`` when nothing matches."""
        self.lookups += 1
        norm = text.lower().strip()

        for place in self.places.metros:
            for alias in place.patterns:
                if alias in norm or norm in alias:
                    _LOGGER.debug("Matched %r to metro %s", text, place.name)
                    return place.coordinates

        for table in (self.places.cities, self.places.regions):
            for place in table:
                if place.patterns[0] in norm:
                    _LOGGER.debug("Matched %r to %s", text, place.name)
                    return place.coordinates
        return None

    def regional_default(self, text):
        norm = text.lower().strip()
        for place in self.places.continents:
            if any(p in norm for p in place.patterns):
                _LOGGER.debug("Using %s regional default for %r", place.name, text)
                return place.coordinates
        _LOGGER.debug("Using global default for %r", text)
        return self.places.default

    async def resolve(self, text):
        if not isinstance(text, str) or not text.strip():
            return None
        if text in self.cache:
            return self.cache[text]

        task = self._pending.get(text)
        if task is None:
            task = asyncio.ensure_future(self._resolve_uncached(text))
            self._pending[text] = task
            task.add_done_callback(lambda _t: self._pending.pop(text, None))
        return await task

    async def _resolve_uncached(self, text):
        coords = self.match(text)
        if coords is None and self.geocoder is not None:
            coords = await self._geocode(text)
            # another caller may have filled the entry while we were suspended
            if text in self.cache:
                return self.cache[text]
        if coords is None:
            coords = self.regional_default(text)
        self.cache[text] = coords
        return coords

    async def _geocode(self, text):
        self.geocoder_calls += 1
        try:
            res = await self.geocoder(text)
        except Exception:
            _LOGGER.warning("Geocoder failed for %r", text, exc_info=True)
            return None
        if res is None:
            return None
        return Coordinates(float(res.latitude), float(res.longitude))


def nominatim_geocoder(user_agent="devmap", min_delay_seconds=1, timeout=10):
    """Rate-limited Nominatim lookup usable as ``LocationResolver.geocoder``.

    geopy's blocking geocoder runs in a worker thread so the event loop keeps
    serving other resolutions; the RateLimiter spaces the actual requests.
    """
    geolocator = Nominatim(user_agent=user_agent)
    geocode = RateLimiter(geolocator.geocode, min_delay_seconds=min_delay_seconds,
                          max_retries=3)

    async def lookup(text):
        return await asyncio.to_thread(geocode, text, timeout=timeout)

    return lookup
