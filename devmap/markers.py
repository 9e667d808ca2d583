import asyncio
import logging
from typing import NamedTuple

import pandas as pd

from .settings import Settings
from .viewport import select

_LOGGER = logging.getLogger("devmap.markers")

KEY_PRECISION = 3


class Marker(NamedTuple):
    login: str
    lat: float
    lng: float
    developer: object


def spread(count, lat, lng, offset):
    """Positions for ``count`` developers sharing one coordinate.

    Member ``i`` is shifted by ``i * offset`` on both axes.
    """
    return [(lat + i * offset, lng + i * offset) for i in range(count)]


class MarkerRenderer:

    def __init__(self, store, resolver, settings=None):
        self.store = store
        self.resolver = resolver
        self.settings = settings or Settings()
        self.markers = ()
        self.notice = None

    async def resolve_missing(self, devs):
        """Fill in coordinates for ``devs``; already-set coordinates are kept."""
        todo = [d for d in devs
                if d.coordinates is None and isinstance(d.location, str) and d.location]
        if not todo:
            return

        locations = []
        for dev in todo:
            if dev.location not in locations and not self.resolver.is_cached(dev.location):
                locations.append(dev.location)

        size = self.settings.geocode_group_size
        if locations:
            _LOGGER.info("Resolving %d locations", len(locations))
        for start in range(0, len(locations), size):
            group = locations[start:start + size]
            results = await asyncio.gather(
                *(self.resolver.resolve(loc) for loc in group), return_exceptions=True)
            for loc, res in zip(group, results):
                if isinstance(res, Exception):
                    _LOGGER.warning("Could not resolve %r: %s", loc, res)
            if start + size < len(locations):
                await asyncio.sleep(self.settings.geocode_delay)

        for dev in todo:
            if dev.coordinates is None:
                dev.coordinates = self.resolver.cached(dev.location)

    def place(self, devs):
        placed = [d for d in devs if d.coordinates is not None]
        if not placed:
            return []

        df = pd.DataFrame({
            "i": range(len(placed)),
            "Latitude": [round(d.coordinates.lat, KEY_PRECISION) for d in placed],
            "Longitude": [round(d.coordinates.lng, KEY_PRECISION) for d in placed],
        })

        out = []
        for (lat, lng), group in df.groupby(["Latitude", "Longitude"], sort=False):
            spots = spread(len(group), lat, lng, self.settings.marker_offset)
            for i, (mlat, mlng) in zip(group["i"], spots):
                dev = placed[i]
                out.append(Marker(dev.login, mlat, mlng, dev))
        return out

    async def refresh(self, bounds):
        try:
            devs = select(bounds, self.store, self.settings)
            _LOGGER.info("Updating markers: %d/%d developers in view", len(devs), len(self.store))
            await self.resolve_missing(devs)
            markers = self.place(devs)
        except Exception:
            _LOGGER.exception("Error updating markers")
            self.notice = "Failed to update map markers"
            return self.markers

        self.markers = tuple(markers)
        self.notice = None
        _LOGGER.info("Created %d markers", len(self.markers))
        return self.markers

    def clear(self):
        self.markers = ()
        self.notice = None
