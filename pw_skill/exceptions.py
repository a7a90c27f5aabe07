"""Error types shared by the host, the tools and the CLI."""


class SkillError(Exception):
	"""Base class for pw_skill errors."""

	pass


class BrowserNotRunningError(SkillError):
	"""No reachable browser and launching one did not produce a CDP endpoint."""

	def __init__(self, message: str = 'Browser not running. Start with: launch'):
		super().__init__(message)


class ToolTimeoutError(SkillError):
	"""A tool (or other awaited operation) lost its race against the clock."""

	def __init__(self, ms: int, operation: str | None = None):
		self.ms = ms
		self.operation = operation
		suffix = f': {operation}' if operation else ''
		super().__init__(f'Timeout after {ms}ms{suffix}')


class ElementNotFoundError(SkillError):
	def __init__(self, selector: str):
		self.selector = selector
		super().__init__(f'Element not found: {selector}')


class NoPageLoadedError(SkillError):
	def __init__(self, message: str = 'No page loaded. Use navigate first.'):
		super().__init__(message)


class HostStartError(SkillError):
	"""The host process exited or never signalled readiness."""

	pass


class RequestTimeoutError(SkillError):
	"""The host did not answer a JSON-RPC request in time."""

	pass


class RecordingError(SkillError):
	pass
