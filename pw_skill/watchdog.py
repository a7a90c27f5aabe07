"""Guaranteed process exit for the host.

Playwright keeps the event loop busy with its driver connection, so a host
whose cleanup hangs would never exit on its own. Once triggered, the
watchdog runs cleanup and exits; a timer thread hard-exits the process if
cleanup does not finish within `delay` seconds.
"""

import asyncio
import logging
import os
import signal
import sys
import threading
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_EXIT_DELAY = 15.0


class ExitWatchdog:
	def __init__(
		self,
		cleanup: Callable[[], Awaitable[None]],
		delay: float = DEFAULT_EXIT_DELAY,
		exit_fn: Callable[[int], object] = os._exit,
	) -> None:
		self.cleanup = cleanup
		self.delay = delay
		self.exit_fn = exit_fn
		self._triggered = False
		self._timer: threading.Timer | None = None
		self._pending: asyncio.Future | None = None

	@property
	def triggered(self) -> bool:
		return self._triggered

	def install(self, loop: asyncio.AbstractEventLoop) -> None:
		"""Route SIGINT/SIGTERM/SIGHUP to trigger()."""
		for sig in (signal.SIGINT, signal.SIGTERM, signal.SIGHUP):
			try:
				loop.add_signal_handler(sig, self.trigger_soon, f'signal {sig.name}')
			except (NotImplementedError, RuntimeError):
				# Windows or a non-main thread
				pass

	def trigger_soon(self, reason: str) -> None:
		"""Schedule trigger() from a signal handler or another task."""
		if self._pending is None:
			self._pending = asyncio.ensure_future(self.trigger(reason))

	def _hard_exit(self) -> None:
		logger.error(f'Cleanup did not finish within {self.delay}s, forcing exit')
		self.exit_fn(1)

	async def trigger(self, reason: str) -> None:
		"""Run cleanup once and exit the process. Later calls are no-ops."""
		if self._triggered:
			return
		self._triggered = True
		logger.info(f'Exiting host: {reason}')

		self._timer = threading.Timer(self.delay, self._hard_exit)
		self._timer.daemon = True
		self._timer.start()

		try:
			await self.cleanup()
		except Exception as e:
			logger.error(f'Cleanup failed: {type(e).__name__}: {e}')

		for stream in (sys.stdout, sys.stderr):
			try:
				stream.flush()
			except (OSError, ValueError):
				pass

		self._timer.cancel()
		self.exit_fn(0)
