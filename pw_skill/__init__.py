"""pw-skill: persistent Playwright browser sessions for the command line.

Each `pw` invocation spawns a short-lived host process that speaks JSON-RPC over
stdio. The host attaches to a long-lived Chromium over CDP, so browser state
(tabs, cookies, logged-in sessions) survives across separate commands.

Usage:
    pw navigate https://example.com
    pw click 'button "Submit"'
    pw fill 'textbox "Email"' me@example.com
    pw snapshot
    pw close
"""

__all__ = ['main']


def __getattr__(name: str):
	"""Lazy import to avoid runpy warnings when running as module."""
	if name == 'main':
		from pw_skill.main import main

		return main
	raise AttributeError(f'module {__name__!r} has no attribute {name!r}')
