import logging

from .listing import render_list
from .loader import BatchLoader
from .markers import MarkerRenderer
from .resolver import LocationResolver
from .settings import Settings
from .store import DeveloperStore

_LOGGER = logging.getLogger("devmap.session")


class Session:
    """All state behind one map: developers, batches, location cache, markers.

    ``clear()`` forgets developers, batches and markers; the location cache
    lives as long as the session object.
    """

    def __init__(self, source, settings=None, resolver=None):
        self.settings = settings or Settings()
        self.store = DeveloperStore()
        self.resolver = resolver or LocationResolver()
        self.notices = []
        self.loader = BatchLoader(source, self.store, self.settings, notify=self.notices.append)
        self.renderer = MarkerRenderer(self.store, self.resolver, self.settings)

    @property
    def markers(self):
        return self.renderer.markers

    def counts(self):
        return len(self.markers), len(self.store), len(self.loader.loaded)

    def pop_notices(self):
        out = list(self.notices)
        if self.renderer.notice:
            out.append(self.renderer.notice)
            self.renderer.notice = None
        self.notices.clear()
        return out

    def clear(self):
        _LOGGER.info("Clearing all data")
        self.renderer.clear()
        self.store.clear()
        self.loader.reset()
        self.notices.clear()

    async def refresh_data(self):
        self.clear()
        await self.loader.load_initial()

    async def on_viewport_change(self, bounds, zoom):
        _LOGGER.debug("Map changed: zoom=%s bounds=%s", zoom, bounds)
        await self.loader.expand_for_zoom(zoom)
        return await self.renderer.refresh(bounds)

    def list_view(self, sort_key, query):
        return render_list(self.store, sort_key, query, self.settings.list_limit)

    async def close(self):
        await self.loader.source.close()
