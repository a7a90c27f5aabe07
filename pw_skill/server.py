"""Host process - runs tool calls for one CLI invocation.

The host speaks newline-delimited JSON-RPC 2.0: requests arrive on stdin,
responses leave on stdout, logs go to stderr. Requests are handled one at a
time in arrival order. Input is read ahead by a separate task so that a
client hanging up is noticed even while a tool is running.

Run with: python -m pw_skill.server
"""

import asyncio
import json
import logging
import sys
from collections.abc import Callable
from typing import Any

from pw_skill.config import SkillConfig
from pw_skill.context import Context
from pw_skill.protocol import (
	CALLER_CWD_PARAM,
	INVALID_REQUEST,
	LIST_TOOLS,
	METHOD_NOT_FOUND,
	PARSE_ERROR,
	READY_MARKER,
	SHUTDOWN,
	TOOL_ERROR,
	Request,
	Response,
)
from pw_skill.tools import ToolRegistry, create_default_registry, execute_tool
from pw_skill.watchdog import ExitWatchdog

logger = logging.getLogger(__name__)

# evaluate scripts and fill values can be large
STDIN_LIMIT = 16 * 1024 * 1024

# queued in place of a line that went over STDIN_LIMIT
OVERSIZED_LINE = object()


async def _discard_line(reader: asyncio.StreamReader) -> None:
	"""Drop input up to and including the next newline (or EOF)."""
	try:
		while True:
			try:
				await reader.readuntil(b'\n')
				return
			except asyncio.LimitOverrunError as e:
				overrun = e.consumed
			await reader.readexactly(overrun)
	except asyncio.IncompleteReadError:
		return


def _write_stdout(line: str) -> None:
	sys.stdout.write(line + '\n')
	sys.stdout.flush()


class HostServer:
	"""Dispatches JSON-RPC requests to the tool registry against one Context."""

	def __init__(
		self,
		config: SkillConfig,
		registry: ToolRegistry | None = None,
		context: Context | None = None,
		watchdog: ExitWatchdog | None = None,
		write: Callable[[str], None] = _write_stdout,
	) -> None:
		self.config = config
		self.registry = registry or create_default_registry()
		self.context = context or Context(config)
		self.watchdog = watchdog or ExitWatchdog(self.context.disconnect, delay=config.watchdog_delay)
		self.write = write
		self._shutdown_requested = False

	@property
	def state(self) -> str:
		if self._shutdown_requested or self.watchdog.triggered:
			return 'shutting_down'
		if self.context.has_session:
			return 'active'
		return 'idle'

	async def handle_line(self, line: str | bytes) -> Response | None:
		"""Parse one input line and produce its response. Blank lines produce none."""
		if isinstance(line, bytes):
			line = line.decode('utf-8', errors='replace')
		line = line.strip()
		if not line:
			return None

		try:
			message = json.loads(line)
		except json.JSONDecodeError:
			return Response.failure(None, PARSE_ERROR, 'Parse error')

		if not isinstance(message, dict):
			return Response.failure(None, INVALID_REQUEST, 'Invalid Request')

		try:
			request = Request.from_dict(message)
		except ValueError as e:
			request_id = message.get('id')
			if not isinstance(request_id, (int, str)):
				request_id = None
			return Response.failure(request_id, INVALID_REQUEST, f'Invalid Request: {e}')

		return await self.dispatch(request)

	async def dispatch(self, request: Request) -> Response:
		method = request.method
		logger.debug(f'Dispatch: {method} (id={request.id})')

		if method == LIST_TOOLS:
			return Response.success(request.id, self.registry.describe())

		if method == SHUTDOWN:
			self._shutdown_requested = True
			return Response.success(request.id, {'ok': True})

		tool = self.registry.get(method)
		if tool is None:
			return Response.failure(request.id, METHOD_NOT_FOUND, f'Unknown method: {method}')

		if self._shutdown_requested:
			return Response.failure(request.id, TOOL_ERROR, 'Host is shutting down')

		params: dict[str, Any] = dict(request.params)
		cwd = params.pop(CALLER_CWD_PARAM, None)
		if isinstance(cwd, str) and cwd:
			self.context.set_caller_cwd(cwd)

		outcome = await execute_tool(tool, self.context, params)
		if outcome.ok:
			return Response.success(request.id, outcome.result)
		return Response.failure(request.id, outcome.code or TOOL_ERROR, outcome.error or 'Unknown error')

	def send(self, response: Response) -> bool:
		"""Write one response line. False when the client has gone away."""
		try:
			self.write(response.to_json())
		except OSError as e:
			logger.warning(f'Could not write response {response.id}: {type(e).__name__}')
			return False
		return True

	def _exit_reason(self, reason: str) -> str:
		tool = self.context.running_tool
		return f'{reason} while running {tool}' if tool else reason

	async def _pump(self, reader: asyncio.StreamReader, lines: asyncio.Queue) -> None:
		"""Move input lines onto the queue, ending with None at EOF.

		EOF during a tool call means the client is gone, so the watchdog is
		started right away instead of after the tool returns.
		"""
		while True:
			try:
				line = await reader.readuntil(b'\n')
			except asyncio.IncompleteReadError as e:
				line = e.partial
			except asyncio.LimitOverrunError:
				await _discard_line(reader)
				await lines.put(OVERSIZED_LINE)
				continue

			if not line:
				await lines.put(None)
				if self.context.running_tool is not None:
					self.watchdog.trigger_soon(self._exit_reason('stdin closed'))
				return
			await lines.put(line)

	async def _process(self, lines: asyncio.Queue) -> None:
		while not self.watchdog.triggered:
			line = await lines.get()
			if line is None:
				await self.watchdog.trigger('stdin closed')
				return

			if line is OVERSIZED_LINE:
				response = Response.failure(None, PARSE_ERROR, 'Parse error')
			else:
				try:
					response = await self.handle_line(line)
				except Exception as e:
					logger.exception(f'Error handling request: {e}')
					response = Response.failure(None, TOOL_ERROR, f'{type(e).__name__}: {e}')

			if response is not None and not self.send(response):
				await self.watchdog.trigger('stdout closed')
				return

			if self._shutdown_requested:
				await self.watchdog.trigger('shutdown requested')
				return

	async def serve(self, reader: asyncio.StreamReader) -> None:
		"""Process lines until EOF or a shutdown request, then hand over to the watchdog."""
		lines: asyncio.Queue = asyncio.Queue()
		pump = asyncio.create_task(self._pump(reader, lines))
		try:
			await self._process(lines)
		except Exception as e:
			logger.exception(f'Host loop failed: {e}')
			await self.watchdog.trigger(f'host error: {type(e).__name__}')
		finally:
			pump.cancel()

	async def run(self) -> None:
		loop = asyncio.get_running_loop()
		self.watchdog.install(loop)

		reader = asyncio.StreamReader(limit=STDIN_LIMIT)
		protocol = asyncio.StreamReaderProtocol(reader)
		await loop.connect_read_pipe(lambda: protocol, sys.stdin)

		print(READY_MARKER, file=sys.stderr, flush=True)
		await self.serve(reader)


def main() -> None:
	from pw_skill.logging_config import setup_logging

	config = SkillConfig.from_env()
	setup_logging(config.logging_level)

	server = HostServer(config)
	asyncio.run(server.run())


if __name__ == '__main__':
	main()
