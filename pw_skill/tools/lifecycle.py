import logging
import os
import signal

from pw_skill.tools.base import define_tool
from pw_skill.tools.views import NoParamsAction

logger = logging.getLogger(__name__)


@define_tool('close', 'Close browser (stops the browser process)', NoParamsAction, timeout_ms=10000)
async def close(ctx, params: NoParamsAction):
	record = ctx.endpoints.load()
	if record is None:
		return {'status': 'not_running'}

	try:
		await ctx.connect_existing()
		await ctx.close_browser()
	except Exception as e:
		logger.debug(f'Graceful close failed, falling back to SIGTERM: {e}')

	try:
		os.kill(record.pid, signal.SIGTERM)
	except ProcessLookupError:
		pass
	except PermissionError as e:
		logger.warning(f'Could not signal browser process {record.pid}: {e}')

	ctx.endpoints.remove()
	return {'status': 'closed'}
