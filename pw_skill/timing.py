"""Timeout racing and the network-settle heuristic used around page actions."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pw_skill.exceptions import ToolTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Resource types whose completion usually means the page reacted to the action
PAGE_AFFECTING_RESOURCE_TYPES = frozenset({'document', 'stylesheet', 'script', 'xhr', 'fetch'})

DEFAULT_COMPLETION_TIMEOUT_MS = 5000
DEFAULT_SETTLE_MS = 500


def _consume_late_result(task: asyncio.Task) -> None:
	if task.cancelled():
		return
	exc = task.exception()
	if exc is not None:
		logger.debug(f'Operation finished after its timeout with {type(exc).__name__}: {exc}')


async def with_timeout(awaitable: Awaitable[T], ms: int, operation: str | None = None) -> T:
	"""Race `awaitable` against a timer and raise ToolTimeoutError if the timer wins.

	The losing operation is not cancelled: a browser action that already left
	for the browser may still complete after the caller got its timeout error.
	"""
	task = asyncio.ensure_future(awaitable)
	done, _ = await asyncio.wait({task}, timeout=ms / 1000)
	if task in done:
		return task.result()

	task.add_done_callback(_consume_late_result)
	raise ToolTimeoutError(ms, operation)


async def _wait_for_response(request: Any) -> None:
	try:
		response = await request.response()
		if response is not None:
			await response.finished()
	except Exception as e:
		logger.debug(f'Ignoring failed request {getattr(request, "url", "?")}: {e}')


async def wait_for_completion(
	page: Any,
	action: Callable[[], Awaitable[T]],
	timeout_ms: int = DEFAULT_COMPLETION_TIMEOUT_MS,
	settle_ms: int = DEFAULT_SETTLE_MS,
) -> T:
	"""Run `action` and return once the requests it triggered have settled.

	Requests seen during the action and a short settle delay afterwards are
	tracked. Page-affecting ones are awaited, capped at `timeout_ms`, followed
	by one more settle delay. This is a best-effort bound, not a guarantee
	that the page is done reacting.
	"""
	requests: list[Any] = []

	def on_request(request: Any) -> None:
		requests.append(request)

	page.on('request', on_request)
	try:
		result = await action()
		await page.wait_for_timeout(settle_ms)
	finally:
		page.remove_listener('request', on_request)

	pending = [r for r in requests if r.resource_type in PAGE_AFFECTING_RESOURCE_TYPES]
	if pending:
		logger.debug(f'Waiting for {len(pending)} request(s) to settle (cap {timeout_ms}ms)')
		await asyncio.wait(
			{asyncio.ensure_future(_wait_for_response(r)) for r in pending},
			timeout=timeout_ms / 1000,
		)
		await page.wait_for_timeout(settle_ms)

	return result
