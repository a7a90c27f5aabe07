"""Long-lived browser process.

`pw launch` starts Chromium with a CDP port and records where it lives in
the endpoint registry. Hosts attach to it over CDP and never own it.

Every launch path takes the registry's launch lock before deciding to start
a browser. A launcher spawned by a process that already holds the lock is
passed `--lock-held` and skips it.

Usage: pw launch [--headless] [--devtools] [--fg]
"""

import argparse
import asyncio
import contextlib
import logging
import os
import signal
import subprocess
import sys

from playwright.async_api import async_playwright

from pw_skill.cdp import cdp_ready
from pw_skill.config import SkillConfig
from pw_skill.endpoint import EndpointRegistry, HostRecord

logger = logging.getLogger(__name__)

LOCK_HELD_FLAG = '--lock-held'


def build_launch_args(config: SkillConfig, devtools: bool) -> list[str]:
	args = [f'--remote-debugging-port={config.cdp_port}']
	if devtools:
		args.append('--auto-open-devtools-for-tabs')
	return args


def launcher_command(headless: bool, devtools: bool, lock_held: bool = True) -> list[str]:
	"""Command line for a detached foreground launcher."""
	cmd = [sys.executable, '-m', 'pw_skill.launch', '--fg']
	if lock_held:
		cmd.append(LOCK_HELD_FLAG)
	if headless:
		cmd.append('--headless')
	if devtools:
		cmd.append('--devtools')
	return cmd


async def wait_for_record(config: SkillConfig, registry: EndpointRegistry) -> HostRecord | None:
	"""Poll until a record points at a browser that answers, or give up."""
	for _ in range(config.launch_poll_attempts):
		record = registry.load()
		if record is not None and await cdp_ready(record.endpoint):
			return record
		await asyncio.sleep(config.launch_poll_interval)
	return None


def _report_other_launch(record: HostRecord | None) -> int:
	if record is None:
		print('Error: Browser launch timeout - CDP endpoint not available', file=sys.stderr)
		return 1
	print(f'Browser launched by another process (PID {record.pid})')
	print(f'CDP: {record.endpoint}')
	return 0


async def run_browser(config: SkillConfig, headless: bool, devtools: bool, lock_held: bool = False) -> int:
	"""Foreground launcher: start Chromium and keep it alive until it closes or we are signalled."""
	registry = EndpointRegistry(config.host_record_path)

	with contextlib.ExitStack() as lock:
		if not lock_held:
			acquired = lock.enter_context(registry.launch_lock(config.launch_lock_stale_after))
			if not acquired:
				logger.info('Another process is launching the browser, waiting for it')
				return _report_other_launch(await wait_for_record(config, registry))

		existing = registry.load()
		if existing is not None:
			if await cdp_ready(existing.endpoint):
				print(f'Browser already running (PID {existing.pid})')
				print(f'Endpoint: {existing.endpoint}')
				return 0
			logger.info(f'Removing stale host record for PID {existing.pid}')
			registry.remove()

		loop = asyncio.get_running_loop()
		stop = asyncio.Event()
		signals = (signal.SIGINT, signal.SIGTERM)
		for sig in signals:
			loop.add_signal_handler(sig, stop.set)

		try:
			async with async_playwright() as p:
				browser = await p.chromium.launch(
					headless=headless,
					handle_sigint=False,
					handle_sigterm=False,
					handle_sighup=False,
					args=build_launch_args(config, devtools),
				)
				browser.on('disconnected', lambda _: stop.set())

				registry.save(config.cdp_endpoint, os.getpid())
				# the record is visible now, later launchers find it instead of racing
				lock.close()
				print(f'Browser launched ({"headless" if headless else "headed"})')
				print(f'PID: {os.getpid()}')
				print(f'CDP: {config.cdp_endpoint}', flush=True)

				try:
					await stop.wait()
				finally:
					if browser.is_connected():
						print('Closing browser...')
						try:
							await browser.close()
						except Exception as e:
							logger.debug(f'Error closing browser: {e}')
					registry.remove()
		finally:
			for sig in signals:
				loop.remove_signal_handler(sig)

	print('Browser closed')
	return 0


def launch_background(config: SkillConfig, headless: bool, devtools: bool) -> int:
	"""Spawn the foreground launcher detached and report what it recorded."""
	registry = EndpointRegistry(config.host_record_path)

	with registry.launch_lock(config.launch_lock_stale_after) as acquired:
		if not acquired:
			logger.info('Another process is launching the browser, waiting for it')
			return _report_other_launch(asyncio.run(wait_for_record(config, registry)))

		subprocess.Popen(
			launcher_command(headless, devtools, lock_held=True),
			start_new_session=True,
			stdin=subprocess.DEVNULL,
			stdout=subprocess.DEVNULL,
			stderr=subprocess.DEVNULL,
		)
		info = asyncio.run(wait_for_record(config, registry))

	if info is not None:
		print(f'Browser launched in background (PID {info.pid})')
		print(f'CDP: {info.endpoint}')
	else:
		print('Browser starting in background...')
	return 0


def main(argv: list[str] | None = None) -> int:
	from pw_skill.logging_config import setup_logging

	parser = argparse.ArgumentParser(prog='pw launch', description='Launch a browser with a CDP port')
	parser.add_argument('--headless', action='store_true', help='Run without a window')
	parser.add_argument('--devtools', action='store_true', help='Open devtools for every tab')
	parser.add_argument('--fg', action='store_true', help='Stay in the foreground')
	parser.add_argument(LOCK_HELD_FLAG, dest='lock_held', action='store_true', help=argparse.SUPPRESS)
	args = parser.parse_args(argv)

	config = SkillConfig.from_env()
	setup_logging(config.logging_level)

	headless = args.headless or config.headless
	devtools = args.devtools or config.devtools

	if not args.fg:
		return launch_background(config, headless, devtools)
	return asyncio.run(run_browser(config, headless, devtools, lock_held=args.lock_held))


if __name__ == '__main__':
	sys.exit(main())
