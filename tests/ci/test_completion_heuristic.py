"""Tests for with_timeout() and the network-settle heuristic."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from pw_skill.exceptions import ToolTimeoutError
from pw_skill.timing import with_timeout, wait_for_completion
from tests.ci.conftest import FakeRequest, create_mock_page, emit_request


class TestWithTimeout:
	async def test_returns_result_in_time(self):
		async def quick():
			return 42

		assert await with_timeout(quick(), 1000, 'quick') == 42

	async def test_propagates_errors(self):
		async def broken():
			raise ValueError('bad')

		with pytest.raises(ValueError, match='bad'):
			await with_timeout(broken(), 1000)

	async def test_timeout_message(self):
		with pytest.raises(ToolTimeoutError, match=r'^Timeout after 10ms: navigate$'):
			await with_timeout(asyncio.sleep(1), 10, 'navigate')

	async def test_late_failure_is_consumed(self):
		done = asyncio.Event()

		async def fails_late():
			await asyncio.sleep(0.05)
			done.set()
			raise RuntimeError('too late')

		with pytest.raises(ToolTimeoutError):
			await with_timeout(fails_late(), 10)
		await asyncio.wait_for(done.wait(), 1)
		# give the done-callback a turn; an unconsumed exception would be logged by asyncio
		await asyncio.sleep(0)


class TestWaitForCompletion:
	async def test_returns_action_result_without_requests(self):
		page = create_mock_page()

		result = await wait_for_completion(page, AsyncMock(return_value='done'), timeout_ms=100, settle_ms=7)

		assert result == 'done'
		# one settle after the action, none for requests
		page.wait_for_timeout.assert_awaited_once_with(7)
		assert page.listeners == []

	async def test_waits_for_page_affecting_requests(self):
		page = create_mock_page()
		document = FakeRequest('document')
		xhr = FakeRequest('xhr')
		image = FakeRequest('image')

		async def action():
			for request in (document, xhr, image):
				emit_request(page, request)

		await wait_for_completion(page, action, timeout_ms=500, settle_ms=5)

		document.finished.assert_awaited_once()
		xhr.finished.assert_awaited_once()
		image.finished.assert_not_awaited()
		assert page.wait_for_timeout.await_count == 2

	async def test_only_ignored_requests_skip_second_settle(self):
		page = create_mock_page()

		async def action():
			emit_request(page, FakeRequest('image'))
			emit_request(page, FakeRequest('font'))

		await wait_for_completion(page, action, timeout_ms=500, settle_ms=5)

		assert page.wait_for_timeout.await_count == 1

	async def test_slow_requests_are_capped(self):
		page = create_mock_page()
		never = asyncio.Event()
		stuck = FakeRequest('fetch', finished=AsyncMock(side_effect=never.wait))

		async def action():
			emit_request(page, stuck)

		loop = asyncio.get_running_loop()
		started = loop.time()
		await wait_for_completion(page, action, timeout_ms=50, settle_ms=0)

		assert loop.time() - started < 1

	async def test_failed_requests_are_ignored(self):
		page = create_mock_page()
		broken = FakeRequest('script', finished=AsyncMock(side_effect=RuntimeError('net::ERR_ABORTED')))

		async def action():
			emit_request(page, broken)
			return 'ok'

		assert await wait_for_completion(page, action, timeout_ms=200, settle_ms=0) == 'ok'

	async def test_listener_removed_when_action_fails(self):
		page = create_mock_page()

		with pytest.raises(RuntimeError):
			await wait_for_completion(page, AsyncMock(side_effect=RuntimeError('click failed')), 100, 0)

		assert page.listeners == []
