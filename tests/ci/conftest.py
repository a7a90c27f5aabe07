"""Shared fixtures and fakes. Nothing here launches a real browser."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from pw_skill.config import SkillConfig
from pw_skill.context import Context


@pytest.fixture
def config(tmp_path: Path) -> SkillConfig:
	"""Config whose coordination files all live in a per-test directory."""
	return SkillConfig(state_dir=tmp_path / 'state', settle_delay_ms=0, completion_timeout_ms=200)


class FakeRequest:
	def __init__(self, resource_type: str, url: str = 'http://example.com/', finished: AsyncMock | None = None):
		self.resource_type = resource_type
		self.url = url
		self.finished = finished or AsyncMock(return_value=None)
		self.response_obj = MagicMock()
		self.response_obj.finished = self.finished

	async def response(self):
		return self.response_obj


def create_mock_page(url: str = 'http://example.com/', pages: int = 1) -> MagicMock:
	"""A Playwright Page stand-in.

	Event listeners registered with page.on('request', ...) are kept in
	page.listeners so tests can emit requests with emit_request(page, request).
	"""
	page = MagicMock()
	page.url = url
	page.listeners = []
	page.on = MagicMock(side_effect=lambda event, fn: page.listeners.append(fn))
	page.remove_listener = MagicMock(side_effect=lambda event, fn: page.listeners.remove(fn))
	page.wait_for_timeout = AsyncMock(return_value=None)
	page.is_closed = MagicMock(return_value=False)

	for name in (
		'goto',
		'title',
		'click',
		'dblclick',
		'fill',
		'select_option',
		'wait_for_selector',
		'query_selector',
		'query_selector_all',
		'screenshot',
		'pdf',
		'evaluate',
	):
		setattr(page, name, AsyncMock())

	context = MagicMock()
	context.pages = [page] + [MagicMock() for _ in range(pages - 1)]
	page.context = context

	# overlay probes: nothing visible unless a test says otherwise
	locator = MagicMock()
	locator.first.is_visible = AsyncMock(return_value=False)
	locator.aria_snapshot = AsyncMock(return_value='- heading "Example" [level=1]')
	page.locator = MagicMock(return_value=locator)
	return page


def emit_request(page: MagicMock, request: FakeRequest) -> None:
	for listener in list(page.listeners):
		listener(request)


def create_mock_element(text: str | None = 'text', html: str = '<b>x</b>') -> MagicMock:
	element = MagicMock()
	element.text_content = AsyncMock(return_value=text)
	element.inner_html = AsyncMock(return_value=html)
	element.evaluate = AsyncMock(return_value=f'<div>{html}</div>')
	element.screenshot = AsyncMock()
	return element


@pytest.fixture
def page() -> MagicMock:
	return create_mock_page()


@pytest.fixture
def ctx(config: SkillConfig, page: MagicMock, tmp_path: Path) -> Context:
	"""A Context whose page lookups return the mock page."""
	context = Context(config)
	context.set_caller_cwd(str(tmp_path))
	context.get_page = AsyncMock(return_value=page)
	context.require_page = AsyncMock(return_value=page)
	return context
