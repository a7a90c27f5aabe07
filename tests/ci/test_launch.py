"""Tests for `pw launch` and its use of the launch lock."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pw_skill import launch
from pw_skill.config import SkillConfig
from pw_skill.endpoint import EndpointRegistry


@pytest.fixture
def fast_config(tmp_path):
	return SkillConfig(state_dir=tmp_path / 'state', launch_poll_attempts=5, launch_poll_interval=0.01)


@pytest.fixture
def registry(fast_config):
	return EndpointRegistry(fast_config.host_record_path)


def fake_playwright():
	"""async_playwright() stand-in whose browser disconnects as soon as it is watched."""
	browser = MagicMock()
	browser.on = MagicMock(side_effect=lambda event, callback: callback(None))
	browser.is_connected = MagicMock(return_value=False)

	pw = MagicMock()
	pw.chromium.launch = AsyncMock(return_value=browser)
	manager = MagicMock()
	manager.__aenter__ = AsyncMock(return_value=pw)
	manager.__aexit__ = AsyncMock(return_value=False)
	return MagicMock(return_value=manager), pw


def test_launcher_command():
	cmd = launch.launcher_command(headless=True, devtools=False)
	assert cmd[1:] == ['-m', 'pw_skill.launch', '--fg', '--lock-held', '--headless']
	assert '--lock-held' not in launch.launcher_command(False, False, lock_held=False)


async def test_foreground_launch_waits_when_lock_is_taken(fast_config, registry, capsys):
	factory, pw = fake_playwright()

	with registry.launch_lock() as acquired:
		assert acquired
		registry.save(fast_config.cdp_endpoint, 99)
		with (
			patch('pw_skill.launch.async_playwright', factory),
			patch('pw_skill.launch.cdp_ready', AsyncMock(return_value=True)),
		):
			assert await launch.run_browser(fast_config, headless=True, devtools=False) == 0

	pw.chromium.launch.assert_not_awaited()
	assert 'another process (PID 99)' in capsys.readouterr().out


async def test_foreground_launch_gives_up_on_silent_winner(fast_config, registry, capsys):
	factory, pw = fake_playwright()

	with registry.launch_lock():
		with patch('pw_skill.launch.async_playwright', factory):
			assert await launch.run_browser(fast_config, headless=True, devtools=False) == 1

	pw.chromium.launch.assert_not_awaited()
	assert 'Browser launch timeout' in capsys.readouterr().err


async def test_foreground_launch_takes_and_releases_lock(fast_config, registry):
	factory, pw = fake_playwright()
	browser = pw.chromium.launch.return_value
	held_during_launch = []

	def launch_browser(**kwargs):
		held_during_launch.append(registry.lock_path.exists())
		return browser

	pw.chromium.launch.side_effect = launch_browser

	with patch('pw_skill.launch.async_playwright', factory):
		assert await launch.run_browser(fast_config, headless=True, devtools=False) == 0

	assert held_during_launch == [True]
	assert not registry.lock_path.exists()
	assert registry.load() is None


async def test_lock_held_flag_skips_the_lock(fast_config, registry):
	factory, pw = fake_playwright()

	with registry.launch_lock() as acquired:
		assert acquired
		with patch('pw_skill.launch.async_playwright', factory):
			assert await launch.run_browser(fast_config, headless=True, devtools=False, lock_held=True) == 0

	pw.chromium.launch.assert_awaited_once()
	assert pw.chromium.launch.await_args.kwargs['args'] == ['--remote-debugging-port=9222']


def test_background_launch_spawns_with_lock_held(fast_config, registry, capsys):
	def spawn(cmd, **kwargs):
		registry.save(fast_config.cdp_endpoint, 4321)
		return MagicMock()

	with (
		patch('pw_skill.launch.subprocess.Popen', side_effect=spawn) as popen,
		patch('pw_skill.launch.cdp_ready', AsyncMock(return_value=True)),
	):
		assert launch.launch_background(fast_config, headless=False, devtools=False) == 0

	assert '--lock-held' in popen.call_args.args[0]
	assert not registry.lock_path.exists()
	assert 'PID 4321' in capsys.readouterr().out


def test_background_launch_does_not_spawn_when_lock_is_taken(fast_config, registry):
	with registry.launch_lock() as acquired:
		assert acquired
		registry.save(fast_config.cdp_endpoint, 99)
		with (
			patch('pw_skill.launch.subprocess.Popen') as popen,
			patch('pw_skill.launch.cdp_ready', AsyncMock(return_value=True)),
		):
			assert launch.launch_background(fast_config, headless=False, devtools=False) == 0

	popen.assert_not_called()
