"""Tools that write page renderings to disk: screenshot and pdf."""

from datetime import datetime

from pw_skill.exceptions import ElementNotFoundError, SkillError
from pw_skill.tools.base import define_tool
from pw_skill.tools.views import PdfAction, ScreenshotAction

PDF_HEADLESS_ONLY = 'PDF export requires headless mode'


def timestamp() -> str:
	return datetime.now().strftime('%Y-%m-%dT%H-%M-%S')


@define_tool('screenshot', 'Capture screenshot of page', ScreenshotAction, timeout_ms=10000)
async def screenshot(ctx, params: ScreenshotAction):
	page = await ctx.require_page()

	ext = 'jpg' if params.type == 'jpeg' else 'png'
	path = ctx.resolve_path(params.path or f'screenshot-{timestamp()}.{ext}')
	path.parent.mkdir(parents=True, exist_ok=True)

	if params.selector:
		element = await page.query_selector(params.selector)
		if element is None:
			raise ElementNotFoundError(params.selector)
		await element.screenshot(path=str(path), type=params.type)
		return {'path': str(path), 'selector': params.selector}

	await page.screenshot(path=str(path), full_page=params.full_page, type=params.type)
	return {'path': str(path), 'full_page': params.full_page}


@define_tool('pdf', 'Export page as PDF (requires headless mode)', PdfAction, timeout_ms=30000)
async def pdf(ctx, params: PdfAction):
	page = await ctx.require_page()

	path = ctx.resolve_path(params.path or f'page-{timestamp()}.pdf')
	path.parent.mkdir(parents=True, exist_ok=True)

	try:
		await page.pdf(path=str(path), format=params.format, landscape=params.landscape, print_background=True)
	except Exception as e:
		# headed Chromium rejects Page.printToPDF
		if 'printtopdf' in str(e).lower():
			raise SkillError(PDF_HEADLESS_ONLY) from e
		raise

	return {'path': str(path), 'format': params.format, 'landscape': params.landscape}
