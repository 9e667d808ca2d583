"""A single long-lived event loop on a daemon thread.

Dash serves callbacks on worker threads. They hand coroutines to this loop
instead of starting one loop per call, so session state and pooled HTTP
connections stay bound to a single loop.
"""

import asyncio
import logging
import threading

_LOGGER = logging.getLogger("devmap.runner")


class BackgroundLoop:

    def __init__(self, name="devmap-loop"):
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def _run(self):
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    @property
    def running(self):
        return self._thread.is_alive()

    def submit(self, coro, timeout=None):
        """Run ``coro`` on the loop and block the calling thread for its result."""
        if threading.current_thread() is self._thread:
            raise RuntimeError("submit() called from the loop thread")
        future = asyncio.run_coroutine_threadsafe(coro, self.loop)
        return future.result(timeout)

    def call(self, func, *args):
        """Run a plain function on the loop thread, between coroutine steps."""
        async def wrapper():
            return func(*args)
        return self.submit(wrapper())

    def stop(self):
        if not self.running:
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join()
        self.loop.close()
        _LOGGER.debug("Background loop stopped")
