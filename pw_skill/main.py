#!/usr/bin/env python3
"""`pw` - drive a persistent browser from the shell.

Tool commands (navigate, click, fill, ...) spawn a host process, send it one
JSON-RPC request and shut it down again. The browser itself keeps running
between commands, so tabs and logins survive. Local commands (launch,
record-start, record-stop, status, logs) never start a host.
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path
from typing import Any

from pw_skill.config import SkillConfig
from pw_skill.exceptions import SkillError
from pw_skill.logging_config import setup_logging
from pw_skill.protocol import CALLER_CWD_PARAM, LIST_TOOLS

# Argument names that belong to the CLI, not to the tool
_CLI_KEYS = {'command', 'method', 'json'}


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(
		prog='pw',
		description='Control a persistent Playwright browser',
		formatter_class=argparse.RawDescriptionHelpFormatter,
		epilog="""Examples:
  pw navigate https://example.com
  pw click 'link "Sign in"'
  pw fill 'textbox "Email"' me@example.com
  pw snapshot
  pw screenshot --full-page
  pw close
""",
	)
	parser.add_argument('--json', action='store_true', help='Print the raw JSON-RPC response')

	subparsers = parser.add_subparsers(dest='command')

	def tool_parser(name: str, help: str, aliases: list[str] | None = None) -> argparse.ArgumentParser:
		p = subparsers.add_parser(name, help=help, aliases=aliases or [])
		p.set_defaults(method=name)
		return p

	# -------------------------------------------------------------------------
	# Tool commands
	# -------------------------------------------------------------------------

	p = tool_parser('navigate', 'Navigate to URL')
	p.add_argument('url', help='URL to navigate to')
	p.add_argument(
		'--wait-until',
		dest='wait_until',
		choices=['domcontentloaded', 'load', 'networkidle'],
		help='When to consider navigation complete',
	)

	p = tool_parser('click', 'Click element (CSS, text=, xpath= or role "name")')
	p.add_argument('selector', help='Selector, e.g. button "Submit"')
	p.add_argument('--force', action='store_true', default=None, help='Bypass actionability checks')
	p.add_argument('--double', action='store_true', default=None, help='Double click')

	p = tool_parser('fill', 'Fill form field')
	p.add_argument('selector', help='Selector, e.g. textbox "Email"')
	p.add_argument('value', nargs='+', help='Value to fill')

	p = tool_parser('select', 'Select dropdown option')
	p.add_argument('selector', help='Selector, e.g. combobox "Country"')
	p.add_argument('value', help='Option to select')
	p.add_argument('--by', choices=['value', 'label', 'index'], help='How to match the option')

	p = tool_parser('wait', 'Wait for element state')
	p.add_argument('selector', help='Selector to wait for')
	p.add_argument('--state', choices=['visible', 'hidden', 'attached', 'detached'], help='State to wait for')

	p = tool_parser('snapshot', 'Print the accessibility tree')
	p.add_argument('selector', nargs='?', help='Root element (default: body)')
	p.add_argument('--file', help='Save to file instead of printing')

	p = tool_parser('screenshot', 'Capture screenshot')
	p.add_argument('path', nargs='?', help='Output path (timestamped if omitted)')
	p.add_argument('--full-page', dest='full_page', action='store_true', default=None, help='Capture the full page')
	p.add_argument('--selector', help='Capture a single element')
	p.add_argument('--type', choices=['png', 'jpeg'], help='Image format')

	p = tool_parser('evaluate', 'Run JavaScript in the page')
	p.add_argument('script', nargs='+', help='JavaScript to evaluate')

	p = tool_parser('get_text', 'Get text content of element', aliases=['get-text'])
	p.add_argument('selector', help='CSS selector')
	p.add_argument('--all', action='store_true', default=None, help='Text of every match')

	p = tool_parser('get_html', 'Get HTML of element', aliases=['get-html'])
	p.add_argument('selector', help='CSS selector')
	p.add_argument('--outer', action='store_true', default=None, help='Include the element itself')

	p = tool_parser('pdf', 'Export page as PDF (headless only)')
	p.add_argument('path', nargs='?', help='Output path (timestamped if omitted)')
	p.add_argument('--format', choices=['A4', 'Letter'], help='Paper format')
	p.add_argument('--landscape', action='store_true', default=None, help='Landscape orientation')

	tool_parser('close', 'Close the browser')
	tool_parser(LIST_TOOLS, 'List host tools', aliases=['list-tools'])

	# -------------------------------------------------------------------------
	# Local commands
	# -------------------------------------------------------------------------

	p = subparsers.add_parser('launch', help='Launch the browser with a CDP port')
	p.add_argument('--headless', action='store_true', help='Run without a window')
	p.add_argument('--devtools', action='store_true', help='Open devtools for every tab')
	p.add_argument('--fg', action='store_true', help='Stay in the foreground')

	p = subparsers.add_parser('record-start', help='Start recording video')
	p.add_argument('output', nargs='?', help='Output file (.mp4)')
	p.add_argument('--width', type=int, default=1280)
	p.add_argument('--height', type=int, default=720)
	p.add_argument('--fg', action='store_true', help='Record in the foreground')

	subparsers.add_parser('record-stop', help='Stop recording and save the video')
	subparsers.add_parser('status', help='Show browser and recording status')

	p = subparsers.add_parser('logs', help='Show host process logs')
	p.add_argument('--tail', type=int, help='Only the last N lines')

	return parser


def build_params(args: argparse.Namespace) -> dict[str, Any]:
	"""Turn parsed arguments into tool params. Unset options are left to the tool's defaults."""
	params: dict[str, Any] = {}
	for key, value in vars(args).items():
		if key in _CLI_KEYS or value is None:
			continue
		# multi-word positionals
		if isinstance(value, list):
			value = ' '.join(value)
		params[key] = value
	return params


def format_result(result: Any) -> str:
	if isinstance(result, dict) and isinstance(result.get('snapshot'), str):
		return result['snapshot']
	if isinstance(result, (dict, list)):
		return json.dumps(result, indent=2, default=str)
	return str(result)


def run_tool(config: SkillConfig, method: str, params: dict[str, Any], as_json: bool = False) -> int:
	from pw_skill.client import HostClient

	if method != LIST_TOOLS:
		# relative paths and the storage file resolve against the shell's directory
		params[CALLER_CWD_PARAM] = os.getcwd()

	try:
		with HostClient(config) as client:
			response = client.request(method, params)
	except SkillError as e:
		print(f'Error: {e}', file=sys.stderr)
		return 1

	if as_json:
		print(json.dumps(response.to_dict(), default=str))
		return 0 if response.ok else 1

	if not response.ok:
		print(f'Error: {response.error_message}', file=sys.stderr)
		return 1

	print(format_result(response.result))
	return 0


def handle_status(config: SkillConfig, as_json: bool = False) -> int:
	from pw_skill.cdp import cdp_ready
	from pw_skill.endpoint import EndpointRegistry
	from pw_skill.recording import RecordingStore

	record = EndpointRegistry(config.host_record_path).load()
	alive = record is not None and asyncio.run(cdp_ready(record.endpoint))
	recording = RecordingStore(config).load()

	status = {
		'browser': 'running' if alive else ('not_responding' if record else 'not_running'),
		'pid': record.pid if record else None,
		'endpoint': record.endpoint if record else None,
		'recording': recording.output_path if recording else None,
	}
	if alive and record is not None:
		import httpx

		from pw_skill.cdp import fetch_ws_endpoint

		try:
			status['ws_endpoint'] = asyncio.run(fetch_ws_endpoint(record.endpoint))
		except (httpx.HTTPError, KeyError, ValueError):
			status['ws_endpoint'] = None

	if as_json:
		print(json.dumps(status))
	else:
		if alive:
			print(f'Browser running (PID {status["pid"]})')
			print(f'  CDP: {status["endpoint"]}')
			if status.get('ws_endpoint'):
				print(f'  WebSocket: {status["ws_endpoint"]}')
		elif record:
			print(f'Browser not responding (stale record for PID {record.pid})')
		else:
			print('Browser not running')
		if recording:
			print(f'Recording to {recording.output_path} since {recording.started_at:%H:%M:%S}')
	return 0 if alive else 1


def handle_logs(config: SkillConfig, tail: int | None = None) -> int:
	log_path = config.server_log_path
	if not log_path.exists():
		print('No logs found')
		return 0
	lines = log_path.read_text(errors='replace').splitlines()
	if tail:
		lines = lines[-tail:]
	print('\n'.join(lines))
	return 0


def main(argv: list[str] | None = None) -> int:
	"""Main entry point."""
	parser = build_parser()
	args = parser.parse_args(argv)

	if not args.command:
		parser.print_help()
		return 0

	config = SkillConfig.from_env()
	setup_logging(config.logging_level)

	if args.command == 'launch':
		from pw_skill import launch

		headless = args.headless or config.headless
		devtools = args.devtools or config.devtools
		if args.fg:
			return asyncio.run(launch.run_browser(config, headless, devtools))
		return launch.launch_background(config, headless, devtools)

	if args.command == 'record-start':
		from pw_skill import recording

		if args.fg:
			output_path = recording.normalize_output_path(args.output, Path.cwd())
			try:
				return asyncio.run(recording.record(config, output_path, args.width, args.height))
			except SkillError as e:
				print(f'Error: {e}', file=sys.stderr)
				return 1
		return recording.start_background(config, args.output, args.width, args.height)

	if args.command == 'record-stop':
		from pw_skill import recording

		return recording.stop(config)

	if args.command == 'status':
		return handle_status(config, args.json)

	if args.command == 'logs':
		return handle_logs(config, args.tail)

	return run_tool(config, args.method, build_params(args), args.json)


if __name__ == '__main__':
	sys.exit(main())
