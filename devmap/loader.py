import asyncio
import logging
import math

from .errors import DataNotFound, DataUnavailable, NoDeveloperData
from .settings import Settings
from .sources import FALLBACK_PATH, INDEX_PATH, batch_path
from .store import Developer

_LOGGER = logging.getLogger("devmap.loader")


def _ignore(message):
    pass


def _records(data, what):
    if not isinstance(data, dict):
        raise DataUnavailable(f"Expected an object in {what}, got {type(data).__name__}")
    records = data.get("developers") or []
    if not isinstance(records, list):
        raise DataUnavailable(f"Expected a developers list in {what}")
    return records


class BatchLoader:
    """Pulls numbered developer batches into a store as the map zooms in."""

    def __init__(self, source, store, settings=None, notify=None):
        self.source = source
        self.store = store
        self.settings = settings or Settings()
        self.notify = notify or _ignore
        self.loaded = set()
        self.index = None
        self.fallback = False

    @property
    def total_batches(self):
        return int(self.index.get("total_batches", 0)) if self.index else 0

    def reset(self):
        self.loaded.clear()
        self.index = None
        self.fallback = False

    def merge(self, records):
        added = 0
        for rec in records:
            try:
                dev = Developer.from_record(rec)
            except (ValueError, TypeError, AttributeError):
                _LOGGER.warning("Skipping malformed developer record", exc_info=True)
                continue
            if self.store.add(dev):
                added += 1
        return added

    async def load_index(self):
        try:
            self.index = await self.source.fetch(INDEX_PATH)
            if not isinstance(self.index, dict):
                raise DataUnavailable(f"Expected an object in {INDEX_PATH}")
        except DataUnavailable as exc:
            _LOGGER.warning("Failed to load index: %s", exc)
            self.index = None
            return None
        _LOGGER.info("Index loaded: %s developers across %s batches",
                     self.index.get("total_developers"), self.total_batches)
        return self.index

    async def load_fallback(self):
        data = await self.source.fetch(FALLBACK_PATH)
        records = _records(data, FALLBACK_PATH)
        added = self.merge(records)
        self.fallback = True
        self.loaded.add(0)
        _LOGGER.info("Loaded %d developers from single file (%d new)", len(records), added)
        return records

    async def load_batch(self, n):
        if n in self.loaded:
            _LOGGER.debug("Batch %d already loaded", n)
            return []

        try:
            _LOGGER.info("Loading batch %d", n)
            try:
                data = await self.source.fetch(batch_path(n, self.index))
            except DataNotFound:
                if self.loaded:
                    raise
                _LOGGER.info("Batch %d not found, trying single-file fallback", n)
                return await self.load_fallback()

            records = _records(data, f"batch {n}")
            added = self.merge(records)
            self.loaded.add(n)
            _LOGGER.info("Loaded batch %d: %d developers (%d new)", n, len(records), added)
            return records
        except DataUnavailable as exc:
            _LOGGER.error("Failed to load batch %d: %s", n, exc)
            self.notify(f"Failed to load developer data batch {n}")
            return []

    async def load_initial(self):
        await self.load_index()

        if self.index is None:
            _LOGGER.info("No index found, loading single file")
            try:
                await self.load_fallback()
            except DataUnavailable as exc:
                _LOGGER.error("Failed to load fallback data: %s", exc)
        else:
            count = min(self.settings.initial_batches, self.total_batches)
            _LOGGER.info("Loading %d initial batches", count)
            for n in range(count):
                if n:
                    await asyncio.sleep(self.settings.initial_batch_delay)
                await self.load_batch(n)
                if self.fallback:
                    break

        if not len(self.store):
            raise NoDeveloperData("No developer data available. Please check if data files exist.")
        _LOGGER.info("Initial load complete: %d developers loaded", len(self.store))

    def target_for_zoom(self, zoom):
        s = self.settings
        if zoom is None or zoom < s.min_zoom_for_more:
            return None
        extra = math.floor((zoom - s.min_zoom_for_more) * s.batches_per_zoom) + 1
        return min(s.initial_batches + extra, self.total_batches, s.max_batches)

    async def ensure_loaded(self, target):
        if self.fallback:
            return
        if self.index is not None:
            target = min(target, self.total_batches)
        fetched = False
        for n in range(target):
            if n in self.loaded:
                continue
            if fetched:
                await asyncio.sleep(self.settings.batch_delay)
            _LOGGER.info("Loading additional batch %d (target %d)", n, target)
            await self.load_batch(n)
            fetched = True
            if self.fallback:
                break

    async def expand_for_zoom(self, zoom):
        if self.index is None or self.fallback:
            return
        target = self.target_for_zoom(zoom)
        if target is None or len(self.loaded) >= target:
            return
        await self.ensure_loaded(target)
