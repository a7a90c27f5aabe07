"""Tool definitions, the registry, and the single execution path for tool calls."""

import logging
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from pw_skill.exceptions import ToolTimeoutError
from pw_skill.protocol import INVALID_PARAMS, TOOL_ERROR
from pw_skill.timing import with_timeout

if TYPE_CHECKING:
	from pw_skill.context import Context

logger = logging.getLogger(__name__)

DEFAULT_TOOL_TIMEOUT_MS = 5000

Handler = Callable[['Context', Any], Awaitable[Any]]


@dataclass(frozen=True)
class Tool:
	name: str
	description: str
	param_model: type[BaseModel]
	timeout_ms: int
	handler: Handler


def define_tool(
	name: str,
	description: str,
	param_model: type[BaseModel],
	timeout_ms: int = DEFAULT_TOOL_TIMEOUT_MS,
) -> Callable[[Handler], Tool]:
	"""Turn `async def handler(ctx, params)` into a Tool.

	Example:
	    @define_tool('title', 'Get the page title', NoParamsAction)
	    async def title(ctx, params):
	        page = await ctx.require_page()
	        return {'title': await page.title()}
	"""

	def decorator(handler: Handler) -> Tool:
		return Tool(name=name, description=description, param_model=param_model, timeout_ms=timeout_ms, handler=handler)

	return decorator


class ToolRegistry:
	def __init__(self, tools: list[Tool] | None = None) -> None:
		self._tools: dict[str, Tool] = {}
		for tool in tools or []:
			self.register(tool)

	def register(self, tool: Tool) -> None:
		if tool.name in self._tools:
			raise ValueError(f'Duplicate tool name: {tool.name}')
		self._tools[tool.name] = tool

	def get(self, name: str) -> Tool | None:
		return self._tools.get(name)

	def names(self) -> list[str]:
		return list(self._tools)

	def describe(self) -> list[dict[str, str]]:
		return [{'name': t.name, 'description': t.description} for t in self._tools.values()]

	def __contains__(self, name: object) -> bool:
		return name in self._tools

	def __iter__(self) -> Iterator[Tool]:
		return iter(self._tools.values())

	def __len__(self) -> int:
		return len(self._tools)


@dataclass
class ToolOutcome:
	result: Any = None
	error: str | None = None
	code: int | None = None

	@property
	def ok(self) -> bool:
		return self.error is None


def format_validation_error(e: ValidationError) -> str:
	parts = []
	for err in e.errors():
		loc = '.'.join(str(p) for p in err['loc'])
		parts.append(f'{loc}: {err["msg"]}' if loc else err['msg'])
	return 'Invalid params: ' + '; '.join(parts)


async def execute_tool(tool: Tool, ctx: 'Context', raw_params: dict[str, Any] | None) -> ToolOutcome:
	"""Validate params, run the handler under the tool's timeout, and capture the outcome."""
	try:
		params = tool.param_model.model_validate(raw_params or {})
	except ValidationError as e:
		return ToolOutcome(error=format_validation_error(e), code=INVALID_PARAMS)

	ctx.running_tool = tool.name
	try:
		result = await with_timeout(tool.handler(ctx, params), tool.timeout_ms, tool.name)
		return ToolOutcome(result=result)
	except ToolTimeoutError as e:
		logger.warning(str(e))
		return ToolOutcome(error=str(e), code=TOOL_ERROR)
	except Exception as e:
		logger.debug(f'Tool {tool.name} failed: {type(e).__name__}: {e}')
		return ToolOutcome(error=str(e) or type(e).__name__, code=TOOL_ERROR)
	finally:
		ctx.running_tool = None
