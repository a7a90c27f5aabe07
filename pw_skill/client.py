"""Client side of the host protocol.

Every CLI invocation spawns a fresh host, sends its request, and shuts the
host down again. Browser state survives because the browser itself lives in
a separate long-lived process (see launch.py).
"""

import itertools
import json
import logging
import queue
import subprocess
import sys
import threading
import time
from typing import IO, Any

from pw_skill.config import SkillConfig
from pw_skill.exceptions import HostStartError, RequestTimeoutError
from pw_skill.protocol import READY_MARKER, SHUTDOWN, Request, Response

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 5.0
TERMINATE_GRACE = 2.0


class HostClient:
	"""Owns one host subprocess for the duration of a `with` block."""

	def __init__(self, config: SkillConfig, command: list[str] | None = None) -> None:
		self.config = config
		self.command = command or [sys.executable, '-m', 'pw_skill.server']
		self.process: subprocess.Popen | None = None
		self._ids = itertools.count(1)
		self._responses: queue.Queue[Response | None] = queue.Queue()
		self._ready = threading.Event()
		self._threads: list[threading.Thread] = []

	def __enter__(self) -> 'HostClient':
		self.start()
		return self

	def __exit__(self, *exc_info: object) -> None:
		self.close()

	# --- lifecycle ----------------------------------------------------------

	def start(self) -> None:
		"""Spawn the host and block until it prints the ready marker."""
		self.config.server_log_path.parent.mkdir(parents=True, exist_ok=True)
		try:
			self.process = subprocess.Popen(
				self.command,
				stdin=subprocess.PIPE,
				stdout=subprocess.PIPE,
				stderr=subprocess.PIPE,
				text=True,
				encoding='utf-8',
				bufsize=1,
			)
		except OSError as e:
			raise HostStartError(f'Failed to start host: {e}') from e

		assert self.process.stdout is not None and self.process.stderr is not None
		self._spawn_reader(self._pump_stdout, self.process.stdout)
		self._spawn_reader(self._pump_stderr, self.process.stderr)

		deadline = time.monotonic() + self.config.server_ready_timeout
		while not self._ready.wait(0.05):
			code = self.process.poll()
			if code is not None:
				raise HostStartError(f'Host exited with code {code} (see {self.config.server_log_path})')
			if time.monotonic() > deadline:
				self._kill()
				raise HostStartError('Host start timeout')

	def close(self) -> None:
		"""Ask the host to shut down, then make sure it is gone."""
		proc = self.process
		if proc is None:
			return
		if proc.poll() is None:
			try:
				self.request(SHUTDOWN, {}, timeout=SHUTDOWN_TIMEOUT)
			except Exception as e:
				logger.debug(f'Shutdown request failed: {e}')
		self._kill()
		self.process = None

	def _kill(self) -> None:
		proc = self.process
		if proc is None or proc.poll() is not None:
			return
		proc.terminate()
		try:
			proc.wait(TERMINATE_GRACE)
		except subprocess.TimeoutExpired:
			proc.kill()
			proc.wait()

	# --- I/O ----------------------------------------------------------------

	def _spawn_reader(self, target: Any, stream: IO[str]) -> None:
		thread = threading.Thread(target=target, args=(stream,), daemon=True)
		thread.start()
		self._threads.append(thread)

	def _pump_stdout(self, stream: IO[str]) -> None:
		for line in stream:
			line = line.strip()
			if not line:
				continue
			try:
				self._responses.put(Response.from_json(line))
			except (json.JSONDecodeError, AttributeError):
				logger.debug(f'Ignoring non-JSON host output: {line[:200]}')
		# EOF: wake up anyone waiting for a response
		self._responses.put(None)

	def _pump_stderr(self, stream: IO[str]) -> None:
		with open(self.config.server_log_path, 'a', encoding='utf-8') as log:
			for line in stream:
				log.write(line)
				log.flush()
				if READY_MARKER in line:
					self._ready.set()

	def request(self, method: str, params: dict[str, Any] | None = None, timeout: float | None = None) -> Response:
		"""Send one request and wait for the response carrying the same id."""
		proc = self.process
		if proc is None or proc.stdin is None:
			raise HostStartError('Host not started')

		request = Request(id=next(self._ids), method=method, params=params or {})
		try:
			proc.stdin.write(request.to_json() + '\n')
			proc.stdin.flush()
		except (BrokenPipeError, OSError) as e:
			raise HostStartError(f'Host is not accepting requests: {e}') from e

		timeout = self.config.request_timeout if timeout is None else timeout
		deadline = time.monotonic() + timeout
		while True:
			remaining = deadline - time.monotonic()
			if remaining <= 0:
				raise RequestTimeoutError('Request timeout')
			try:
				response = self._responses.get(timeout=remaining)
			except queue.Empty:
				raise RequestTimeoutError('Request timeout') from None
			if response is None:
				# keep the EOF sentinel for later waiters
				self._responses.put(None)
				raise HostStartError('Host exited before responding')
			if response.id == request.id:
				return response
			logger.debug(f'Dropping response for unknown id {response.id!r}')
