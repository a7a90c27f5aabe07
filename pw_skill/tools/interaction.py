"""Tools that act on page elements: click, fill, select, wait."""

import asyncio
import logging

from pw_skill.selector import to_playwright_selector
from pw_skill.timing import wait_for_completion
from pw_skill.tools.base import define_tool
from pw_skill.tools.views import ClickAction, FillAction, SelectAction, WaitAction

logger = logging.getLogger(__name__)

OVERLAY_PROBE_TIMEOUT = 0.1
DIALOG_SELECTOR = '[role="dialog"], [role="alertdialog"]'
MENU_SELECTOR = '[role="menu"], [role="listbox"]'
MAX_DISPLAY_VALUE = 50
WAIT_TIMEOUT_MS = 30000


async def _quick_visible(page, selector: str) -> bool:
	"""Visibility probe bounded to 100ms; any failure counts as not visible."""
	try:
		return await asyncio.wait_for(page.locator(selector).first.is_visible(), OVERLAY_PROBE_TIMEOUT)
	except Exception as e:
		logger.debug(f'Visibility probe for {selector} gave up: {type(e).__name__}')
		return False


def classify_click_effect(
	url_before: str,
	url_after: str,
	pages_before: int,
	pages_after: int,
	dialog_visible: bool,
	menu_visible: bool,
) -> str:
	if pages_after > pages_before:
		return 'new tab opened'
	if url_after != url_before:
		return f'navigated to {url_after}'
	if dialog_visible:
		return 'dialog opened'
	if menu_visible:
		return 'menu opened'
	return 'clicked'


def display_value(value: str) -> str:
	if len(value) > MAX_DISPLAY_VALUE:
		return value[: MAX_DISPLAY_VALUE - 3] + '...'
	return value


@define_tool(
	'click',
	'Click element. Supports CSS, text=, xpath=, or role format like: button "Submit"',
	ClickAction,
	timeout_ms=5000,
)
async def click(ctx, params: ClickAction):
	page = await ctx.require_page()
	selector = to_playwright_selector(params.selector)

	url_before = page.url
	pages_before = len(page.context.pages)

	async def action():
		if params.double:
			await page.dblclick(selector, force=params.force)
		else:
			await page.click(selector, force=params.force)

	await wait_for_completion(page, action, ctx.config.completion_timeout_ms, ctx.config.settle_delay_ms)

	dialog, menu = await asyncio.gather(
		_quick_visible(page, DIALOG_SELECTOR),
		_quick_visible(page, MENU_SELECTOR),
	)
	effect = classify_click_effect(url_before, page.url, pages_before, len(page.context.pages), dialog, menu)
	return {'selector': selector, 'effect': effect}


@define_tool('fill', 'Fill form field. Supports role format like: textbox "Email"', FillAction, timeout_ms=5000)
async def fill(ctx, params: FillAction):
	page = await ctx.require_page()
	selector = to_playwright_selector(params.selector)

	await wait_for_completion(
		page,
		lambda: page.fill(selector, params.value),
		ctx.config.completion_timeout_ms,
		ctx.config.settle_delay_ms,
	)

	return {'filled': selector, 'value': display_value(params.value)}


@define_tool(
	'select',
	'Select dropdown option. Supports role format like: combobox "Country"',
	SelectAction,
	timeout_ms=5000,
)
async def select(ctx, params: SelectAction):
	page = await ctx.require_page()
	selector = to_playwright_selector(params.selector)

	if params.by == 'label':
		option = {'label': params.value}
	elif params.by == 'index':
		try:
			option = {'index': int(params.value)}
		except ValueError:
			raise ValueError(f'Option index must be an integer, got {params.value!r}') from None
	else:
		option = {'value': params.value}

	values = await wait_for_completion(
		page,
		lambda: page.select_option(selector, **option),
		ctx.config.completion_timeout_ms,
		ctx.config.settle_delay_ms,
	)

	return {'selected': selector, 'value': params.value, 'by': params.by, 'values': values}


@define_tool('wait', 'Wait for element. Supports role format like: button "Submit"', WaitAction, timeout_ms=WAIT_TIMEOUT_MS)
async def wait(ctx, params: WaitAction):
	page = await ctx.require_page()
	selector = to_playwright_selector(params.selector)
	await page.wait_for_selector(selector, state=params.state, timeout=WAIT_TIMEOUT_MS)
	return {'selector': selector, 'state': params.state}
