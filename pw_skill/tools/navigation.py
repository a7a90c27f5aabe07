from pw_skill.timing import wait_for_completion
from pw_skill.tools.base import define_tool
from pw_skill.tools.views import NavigateAction


@define_tool('navigate', 'Navigate to URL', NavigateAction, timeout_ms=60000)
async def navigate(ctx, params: NavigateAction):
	# navigate is the one page tool allowed to start from a blank page
	page = await ctx.get_page()

	await wait_for_completion(
		page,
		lambda: page.goto(params.url, wait_until=params.wait_until),
		ctx.config.completion_timeout_ms,
		ctx.config.settle_delay_ms,
	)

	return {'url': page.url, 'title': await page.title()}
