"""Wire protocol between the CLI and the host process.

JSON-RPC 2.0, one JSON object per line: requests on the host's stdin,
responses on its stdout.
"""

import json
from dataclasses import dataclass, field
from typing import Any

JSONRPC_VERSION = '2.0'

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
TOOL_ERROR = -32000

# Reserved methods handled by the host itself, outside the tool registry
LIST_TOOLS = 'list_tools'
SHUTDOWN = 'shutdown'
RESERVED_METHODS = frozenset({LIST_TOOLS, SHUTDOWN})

# Parameter carrying the invoking shell's working directory; stripped before validation
CALLER_CWD_PARAM = '_cwd'

# Printed on the host's stderr once it is reading requests
READY_MARKER = '[pw-skill-server] Ready'


@dataclass
class Request:
	"""JSON-RPC request from CLI to host."""

	id: int | str
	method: str
	params: dict[str, Any] = field(default_factory=dict)

	def to_dict(self) -> dict[str, Any]:
		return {'jsonrpc': JSONRPC_VERSION, 'id': self.id, 'method': self.method, 'params': self.params}

	def to_json(self) -> str:
		return json.dumps(self.to_dict())

	@classmethod
	def from_dict(cls, d: dict[str, Any]) -> 'Request':
		"""Build from a decoded message. Raises ValueError if it is not a request."""
		method = d.get('method')
		if not isinstance(method, str) or not method:
			raise ValueError('Missing method')
		params = d.get('params')
		if params is None:
			params = {}
		if not isinstance(params, dict):
			raise ValueError('params must be an object')
		request_id = d.get('id')
		if request_id is not None and not isinstance(request_id, (int, str)):
			raise ValueError('id must be a number or string')
		return cls(id=request_id, method=method, params=dict(params))  # type: ignore[arg-type]


@dataclass
class Response:
	"""JSON-RPC response from host to CLI. Exactly one of result/error is set."""

	id: int | str | None
	result: Any = None
	error: dict[str, Any] | None = None

	@property
	def ok(self) -> bool:
		return self.error is None

	@property
	def error_message(self) -> str | None:
		return self.error.get('message') if self.error else None

	def to_dict(self) -> dict[str, Any]:
		payload: dict[str, Any] = {'jsonrpc': JSONRPC_VERSION, 'id': self.id}
		if self.error is not None:
			payload['error'] = self.error
		else:
			payload['result'] = self.result
		return payload

	def to_json(self) -> str:
		# default=str keeps arbitrary evaluate() results serializable
		return json.dumps(self.to_dict(), default=str)

	@classmethod
	def success(cls, request_id: int | str | None, result: Any) -> 'Response':
		return cls(id=request_id, result=result)

	@classmethod
	def failure(cls, request_id: int | str | None, code: int, message: str) -> 'Response':
		return cls(id=request_id, error={'code': code, 'message': message})

	@classmethod
	def from_json(cls, data: str) -> 'Response':
		d = json.loads(data)
		return cls(id=d.get('id'), result=d.get('result'), error=d.get('error'))
