from pw_skill.tools.base import Tool, ToolOutcome, ToolRegistry, define_tool, execute_tool
from pw_skill.tools.capture import pdf, screenshot
from pw_skill.tools.content import evaluate, get_html, get_text, snapshot
from pw_skill.tools.interaction import click, fill, select, wait
from pw_skill.tools.lifecycle import close
from pw_skill.tools.navigation import navigate

tools: list[Tool] = [
	navigate,
	click,
	fill,
	select,
	wait,
	snapshot,
	screenshot,
	evaluate,
	get_text,
	get_html,
	pdf,
	close,
]


def create_default_registry() -> ToolRegistry:
	return ToolRegistry(tools)


__all__ = [
	'Tool',
	'ToolOutcome',
	'ToolRegistry',
	'create_default_registry',
	'define_tool',
	'execute_tool',
	'tools',
]
