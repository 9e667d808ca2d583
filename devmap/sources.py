"""Static developer data: an index, numbered batch files and a single-file fallback.

Layout, relative to the source root (a directory or a base URL)::

    data/index.json
    data/developers-batch-<n>.json
    developers-data.json
"""

import asyncio
import json
import logging
from pathlib import Path
from urllib.parse import urljoin

import aiohttp

from .errors import DataNotFound, DataUnavailable

_LOGGER = logging.getLogger("devmap.sources")

INDEX_PATH = "data/index.json"
BATCH_PATH = "data/developers-batch-{n}.json"
FALLBACK_PATH = "developers-data.json"


def batch_path(n, index=None):
    # the index may name the batch file explicitly
    if index:
        for entry in index.get("batches", []):
            if entry.get("batch") == n and entry.get("file"):
                return "data/" + entry["file"]
    return BATCH_PATH.format(n=n)


class DirectoryDataSource:

    def __init__(self, root):
        self.root = Path(root)

    def __repr__(self):
        return f"DirectoryDataSource({str(self.root)!r})"

    async def close(self):
        pass

    async def fetch(self, relpath):
        path = self.root / relpath
        _LOGGER.debug("Reading %s", path)
        if not path.exists():
            raise DataNotFound(f"{path} not found")
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as exc:
            raise DataUnavailable(f"Failed to read {path}: {exc}") from exc


class HttpDataSource:

    def __init__(self, base_url, timeout=30):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = None
        self._loop = None

    def __repr__(self):
        return f"HttpDataSource({self.base_url!r})"

    def _client(self):
        # one pooled session per event loop
        loop = asyncio.get_running_loop()
        if self._session is None or self._session.closed or self._loop is not loop:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._loop = loop
        return self._session

    async def close(self):
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
        self._loop = None

    async def fetch(self, relpath):
        url = urljoin(self.base_url, relpath)
        _LOGGER.debug("GET %s", url)
        try:
            async with self._client().get(url) as resp:
                if resp.status == 404:
                    raise DataNotFound(f"{url} not found")
                if resp.status != 200:
                    raise DataUnavailable(f"Failed to load {url}: {resp.status}")
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as exc:
            raise DataUnavailable(f"Failed to load {url}: {exc}") from exc


def open_source(location):
    if location.startswith(("http://", "https://")):
        return HttpDataSource(location)
    return DirectoryDataSource(location)
