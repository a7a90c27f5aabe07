"""Tests for HostClient against a scripted stand-in host process."""

import sys

import pytest

from pw_skill.client import HostClient
from pw_skill.config import SkillConfig
from pw_skill.exceptions import HostStartError, RequestTimeoutError

FAKE_HOST = r"""
import json, sys
print('starting up', file=sys.stderr, flush=True)
print('[pw-skill-server] Ready', file=sys.stderr, flush=True)
for line in sys.stdin:
    req = json.loads(line)
    if req['method'] == 'shutdown':
        print(json.dumps({'jsonrpc': '2.0', 'id': req['id'], 'result': {'ok': True}}), flush=True)
        break
    if req['method'] == 'silent':
        continue
    if req['method'] == 'crash':
        sys.exit(2)
    print('not json', flush=True)
    print(json.dumps({'jsonrpc': '2.0', 'id': 'stale', 'result': None}), flush=True)
    print(json.dumps({'jsonrpc': '2.0', 'id': req['id'], 'result': {'echo': req['params']}}), flush=True)
"""


@pytest.fixture
def client_config(tmp_path):
	return SkillConfig(state_dir=tmp_path, server_ready_timeout=5.0, request_timeout=5.0)


def fake_host(config, script=FAKE_HOST):
	return HostClient(config, command=[sys.executable, '-c', script])


def test_request_roundtrip(client_config):
	with fake_host(client_config) as client:
		first = client.request('navigate', {'url': 'https://example.com'})
		second = client.request('snapshot')

	assert first.ok
	assert first.result == {'echo': {'url': 'https://example.com'}}
	assert second.id == first.id + 1
	assert client.process is None


def test_host_stderr_goes_to_log(client_config):
	with fake_host(client_config) as client:
		client.request('noop')

	log = client_config.server_log_path.read_text()
	assert 'starting up' in log
	assert '[pw-skill-server] Ready' in log


def test_request_timeout(client_config):
	with fake_host(client_config) as client:
		with pytest.raises(RequestTimeoutError):
			client.request('silent', timeout=0.2)


def test_host_exit_before_response(client_config):
	with fake_host(client_config) as client:
		with pytest.raises(HostStartError, match='exited'):
			client.request('crash')


def test_host_that_dies_on_start(client_config):
	client = fake_host(client_config, 'import sys; sys.exit(3)')
	with pytest.raises(HostStartError, match='code 3'):
		client.start()


def test_host_that_never_gets_ready(tmp_path):
	config = SkillConfig(state_dir=tmp_path, server_ready_timeout=0.3)
	client = fake_host(config, 'import time; time.sleep(30)')
	with pytest.raises(HostStartError, match='timeout'):
		client.start()
	assert client.process.poll() is not None
