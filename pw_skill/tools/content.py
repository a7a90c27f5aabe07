"""Read-only tools: accessibility snapshot, element text and HTML, script evaluation."""

from pw_skill.exceptions import ElementNotFoundError
from pw_skill.tools.base import define_tool
from pw_skill.tools.views import EvaluateAction, GetHtmlAction, GetTextAction, SnapshotAction


@define_tool('snapshot', 'Get aria snapshot of page (clean accessibility tree)', SnapshotAction, timeout_ms=10000)
async def snapshot(ctx, params: SnapshotAction):
	page = await ctx.require_page()
	snap = await page.locator(params.selector).aria_snapshot()

	if params.file:
		path = ctx.resolve_path(params.file)
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(snap)
		return {'saved': str(path)}

	return {'snapshot': snap}


@define_tool('get_text', 'Get text content from element', GetTextAction, timeout_ms=5000)
async def get_text(ctx, params: GetTextAction):
	page = await ctx.require_page()

	if params.all:
		elements = await page.query_selector_all(params.selector)
		texts = [await el.text_content() for el in elements]
		return {'texts': [t.strip() for t in texts if t and t.strip()]}

	element = await page.query_selector(params.selector)
	if element is None:
		raise ElementNotFoundError(params.selector)
	text = await element.text_content()
	return {'text': (text or '').strip()}


@define_tool('get_html', 'Get HTML from element', GetHtmlAction, timeout_ms=5000)
async def get_html(ctx, params: GetHtmlAction):
	page = await ctx.require_page()
	element = await page.query_selector(params.selector)
	if element is None:
		raise ElementNotFoundError(params.selector)

	if params.outer:
		html = await element.evaluate('el => el.outerHTML')
	else:
		html = await element.inner_html()
	return {'html': html}


@define_tool('evaluate', 'Run JavaScript in page context', EvaluateAction, timeout_ms=10000)
async def evaluate(ctx, params: EvaluateAction):
	page = await ctx.require_page()
	return {'result': await page.evaluate(params.script)}
