"""Tests for `pw` argument parsing and output formatting."""

import json
from unittest.mock import MagicMock, patch

import pytest

from pw_skill.main import build_params, build_parser, format_result, handle_logs, main, run_tool
from pw_skill.protocol import Response


def parse(*argv):
	return build_parser().parse_args(list(argv))


def test_navigate_params():
	args = parse('navigate', 'https://example.com', '--wait-until', 'load')
	assert args.method == 'navigate'
	assert build_params(args) == {'url': 'https://example.com', 'wait_until': 'load'}


def test_unset_flags_are_left_to_tool_defaults():
	args = parse('click', 'button "Submit"')
	assert build_params(args) == {'selector': 'button "Submit"'}

	args = parse('click', '#x', '--double')
	assert build_params(args) == {'selector': '#x', 'double': True}


def test_multiword_values_are_joined():
	assert build_params(parse('fill', '#q', 'hello', 'world')) == {'selector': '#q', 'value': 'hello world'}
	assert build_params(parse('evaluate', 'document.title', '+', '"!"')) == {'script': 'document.title + "!"'}


@pytest.mark.parametrize('alias,method', [('get-text', 'get_text'), ('get-html', 'get_html'), ('list-tools', 'list_tools')])
def test_dashed_aliases_map_to_tool_names(alias, method):
	argv = [alias] if method == 'list_tools' else [alias, 'h1']
	assert parse(*argv).method == method


def test_global_json_flag():
	args = parse('--json', 'snapshot')
	assert args.json is True
	assert build_params(args) == {}


def test_screenshot_options():
	args = parse('screenshot', 'out.png', '--full-page', '--type', 'jpeg')
	assert build_params(args) == {'path': 'out.png', 'full_page': True, 'type': 'jpeg'}


def test_format_result():
	assert format_result({'snapshot': '- button "Go"'}) == '- button "Go"'
	assert json.loads(format_result({'url': 'u', 'title': 't'})) == {'url': 'u', 'title': 't'}
	assert format_result({'url': 'u'}).startswith('{\n  ')
	assert format_result(3) == '3'


def make_client(response):
	client = MagicMock()
	client.__enter__.return_value = client
	client.request.return_value = response
	return client


def test_run_tool_success_adds_cwd(config, capsys, tmp_path, monkeypatch):
	monkeypatch.chdir(tmp_path)
	client = make_client(Response.success(1, {'url': 'https://example.com/', 'title': 'Example'}))

	with patch('pw_skill.client.HostClient', return_value=client):
		code = run_tool(config, 'navigate', {'url': 'https://example.com/'})

	assert code == 0
	method, params = client.request.call_args.args
	assert method == 'navigate'
	assert params['_cwd'] == str(tmp_path)
	assert json.loads(capsys.readouterr().out) == {'url': 'https://example.com/', 'title': 'Example'}
	client.__exit__.assert_called_once()


def test_run_tool_error_exits_1(config, capsys):
	client = make_client(Response.failure(1, -32000, 'No page loaded. Use navigate first.'))

	with patch('pw_skill.client.HostClient', return_value=client):
		code = run_tool(config, 'snapshot', {})

	assert code == 1
	assert capsys.readouterr().err.strip() == 'Error: No page loaded. Use navigate first.'


def test_run_tool_json_output(config, capsys):
	client = make_client(Response.success(1, {'status': 'closed'}))

	with patch('pw_skill.client.HostClient', return_value=client):
		assert run_tool(config, 'close', {}, as_json=True) == 0

	assert json.loads(capsys.readouterr().out) == {'jsonrpc': '2.0', 'id': 1, 'result': {'status': 'closed'}}


def test_host_start_failure_exits_1(config, capsys):
	from pw_skill.exceptions import HostStartError

	client = MagicMock()
	client.__enter__.side_effect = HostStartError('Host start timeout')

	with patch('pw_skill.client.HostClient', return_value=client):
		assert run_tool(config, 'snapshot', {}) == 1
	assert 'Host start timeout' in capsys.readouterr().err


def test_logs(config, capsys):
	assert handle_logs(config) == 0
	assert capsys.readouterr().out.strip() == 'No logs found'

	config.server_log_path.parent.mkdir(parents=True)
	config.server_log_path.write_text('one\ntwo\nthree\n')
	handle_logs(config, tail=2)
	assert capsys.readouterr().out.strip().splitlines() == ['two', 'three']


def test_no_command_prints_help(capsys):
	assert main([]) == 0
	assert 'usage: pw' in capsys.readouterr().out


def test_record_stop_without_recording(config, capsys, monkeypatch):
	monkeypatch.setenv('PW_SKILL_STATE_DIR', str(config.state_dir))
	assert main(['record-stop']) == 1
	assert 'No recording in progress' in capsys.readouterr().err
