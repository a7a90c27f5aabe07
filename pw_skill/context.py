"""Browsing session held by the host process.

The host owns two separate resources with separate lifetimes:

- the Playwright driver and its CDP connection, which live only as long as
  the host process (`disconnect()`), and
- the browser itself, which outlives every host and is only closed by an
  explicit `close_browser()` / `close` tool call.
"""

import json
import logging
import subprocess
from pathlib import Path

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from pw_skill.cdp import cdp_ready
from pw_skill.config import SkillConfig
from pw_skill.endpoint import EndpointRegistry
from pw_skill.exceptions import BrowserNotRunningError, NoPageLoadedError
from pw_skill.launch import launcher_command, wait_for_record
from pw_skill.recording import RECORDING_MARKER, RecordingStore

logger = logging.getLogger(__name__)

PLACEHOLDER_URL_PREFIXES = ('about:', 'chrome://')


class Context:
	"""Lazily connects to (or launches) the browser and resolves the working page."""

	def __init__(
		self,
		config: SkillConfig,
		endpoints: EndpointRegistry | None = None,
		recordings: RecordingStore | None = None,
	) -> None:
		self.config = config
		self.endpoints = endpoints or EndpointRegistry(config.host_record_path)
		self.recordings = recordings or RecordingStore(config)
		self._playwright: Playwright | None = None
		self._browser: Browser | None = None
		self._context: BrowserContext | None = None
		self._page: Page | None = None
		self._caller_cwd: Path | None = None
		self.running_tool: str | None = None

	# --- caller working directory -------------------------------------------

	def set_caller_cwd(self, cwd: str) -> None:
		self._caller_cwd = Path(cwd)

	@property
	def caller_cwd(self) -> Path:
		return self._caller_cwd or Path.cwd()

	def resolve_path(self, path: str | Path) -> Path:
		"""Resolve a user-supplied path against the invoking shell's directory."""
		p = Path(path).expanduser()
		return p if p.is_absolute() else self.caller_cwd / p

	@property
	def storage_state_path(self) -> Path:
		return self.resolve_path(self.config.storage_state_file)

	# --- browser ------------------------------------------------------------

	@property
	def has_session(self) -> bool:
		return self._browser is not None

	async def _ensure_playwright(self) -> Playwright:
		if self._playwright is None:
			self._playwright = await async_playwright().start()
		return self._playwright

	def _endpoint(self) -> str:
		record = self.endpoints.load()
		return record.endpoint if record else self.config.cdp_endpoint

	async def _connect(self, endpoint: str) -> Browser:
		pw = await self._ensure_playwright()
		browser = await pw.chromium.connect_over_cdp(endpoint, timeout=self.config.cdp_connect_timeout_ms)
		logger.info(f'Connected to browser over CDP at {endpoint} ({len(browser.contexts)} context(s))')
		return browser

	async def connect_existing(self) -> Browser:
		"""Connect to an already-running browser without ever launching one."""
		if self._browser is not None and self._browser.is_connected():
			return self._browser

		endpoint = self._endpoint()
		if not await cdp_ready(endpoint):
			raise BrowserNotRunningError('Browser process not responding')
		try:
			self._browser = await self._connect(endpoint)
		except Exception as e:
			logger.debug(f'CDP connect to {endpoint} failed: {e}')
			raise BrowserNotRunningError('Browser process not responding') from e
		return self._browser

	async def ensure_browser(self) -> Browser:
		"""Connect over CDP, launching a detached browser first if none answers."""
		if self._browser is not None and self._browser.is_connected():
			return self._browser

		endpoint = self._endpoint()
		if await cdp_ready(endpoint):
			try:
				self._browser = await self._connect(endpoint)
				return self._browser
			except Exception as e:
				logger.warning(f'Browser at {endpoint} answered but CDP connect failed: {e}')

		await self._launch_browser_process()

		endpoint = self._endpoint()
		try:
			self._browser = await self._connect(endpoint)
		except Exception as e:
			raise BrowserNotRunningError('Browser process not responding') from e
		return self._browser

	def _launch_command(self) -> list[str]:
		# spawned while this process holds the launch lock
		return launcher_command(self.config.headless, self.config.devtools, lock_held=True)

	async def _launch_browser_process(self) -> None:
		"""Start the browser in its own session and wait until its CDP endpoint is up."""
		with self.endpoints.launch_lock(self.config.launch_lock_stale_after) as acquired:
			if acquired:
				# a record pointing at a dead browser would short-circuit the wait below
				self.endpoints.remove()
				cmd = self._launch_command()
				logger.info(f'Launching browser: {" ".join(cmd)}')
				subprocess.Popen(
					cmd,
					start_new_session=True,
					stdin=subprocess.DEVNULL,
					stdout=subprocess.DEVNULL,
					stderr=subprocess.DEVNULL,
				)
			else:
				logger.info('Another process is launching the browser, waiting for it')

			record = await wait_for_record(self.config, self.endpoints)
			if record is not None:
				logger.info(f'Browser launched (PID {record.pid})')
				return

		raise BrowserNotRunningError('Browser launch timeout - CDP endpoint not available')

	# --- context & page -----------------------------------------------------

	async def _inject_storage_cookies(self, context: BrowserContext) -> None:
		path = self.storage_state_path
		if not path.exists():
			return
		try:
			cookies = json.loads(path.read_text()).get('cookies') or []
			if cookies:
				await context.add_cookies(cookies)
				logger.info(f'Injected {len(cookies)} cookie(s) from {path}')
		except Exception as e:
			logger.warning(f'Could not inject cookies from {path}: {e}')

	async def ensure_context(self) -> BrowserContext:
		"""Reuse the browser's default context so state persists across hosts."""
		if self._context is not None:
			return self._context

		browser = await self.ensure_browser()
		if browser.contexts:
			self._context = browser.contexts[0]
			await self._inject_storage_cookies(self._context)
			return self._context

		storage = self.storage_state_path
		logger.debug('Browser has no context, creating one')
		self._context = await browser.new_context(
			ignore_https_errors=True,
			storage_state=str(storage) if storage.exists() else None,
		)
		return self._context

	def _recording_page(self) -> Page | None:
		if self._browser is None or not self.recordings.is_active():
			return None
		contexts = self._browser.contexts
		for ctx in contexts:
			for page in ctx.pages:
				if RECORDING_MARKER in page.url:
					return page
		# the recording context is the newest one once its marker page navigated away
		if len(contexts) > 1 and contexts[-1].pages:
			return contexts[-1].pages[0]
		return None

	def _apply_default_timeouts(self, page: Page) -> None:
		page.set_default_timeout(self.config.action_timeout_ms)
		page.set_default_navigation_timeout(self.config.navigation_timeout_ms)

	async def get_page(self) -> Page:
		if self._page is not None and not self._page.is_closed():
			return self._page

		context = await self.ensure_context()

		recording_page = self._recording_page()
		if recording_page is not None:
			logger.debug(f'Using recording page: {recording_page.url}')
			self._page = recording_page
			return self._page

		pages = context.pages
		meaningful = next((p for p in pages if p.url and not p.url.startswith(PLACEHOLDER_URL_PREFIXES)), None)
		if meaningful is not None:
			logger.debug(f'Using existing page: {meaningful.url}')
			self._page = meaningful
			return self._page

		if pages:
			self._page = pages[0]
			return self._page

		logger.debug('Creating new page')
		self._page = await context.new_page()
		self._apply_default_timeouts(self._page)
		return self._page

	async def require_page(self) -> Page:
		"""Like get_page(), but refuse to act on a blank page."""
		page = await self.get_page()
		if page.url == 'about:blank':
			raise NoPageLoadedError()
		return page

	# --- teardown -----------------------------------------------------------

	async def disconnect(self) -> None:
		"""Stop the Playwright driver. The browser keeps running."""
		self._page = None
		self._context = None
		self._browser = None
		pw, self._playwright = self._playwright, None
		if pw is not None:
			try:
				await pw.stop()
			except Exception as e:
				logger.debug(f'Error stopping playwright driver: {e}')

	async def close_browser(self) -> None:
		"""Close the browser connection, then disconnect."""
		browser = self._browser
		if browser is not None:
			try:
				await browser.close()
			except Exception as e:
				logger.debug(f'Error closing browser: {e}')
		await self.disconnect()
