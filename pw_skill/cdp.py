"""Probes against the browser's CDP HTTP endpoint."""

import logging
from urllib.parse import urlparse, urlunparse

import httpx

logger = logging.getLogger(__name__)


def version_url(endpoint: str) -> str:
	"""Turn http://host:port (with or without a path) into its /json/version URL."""
	parsed = urlparse(endpoint)
	path = parsed.path.rstrip('/')
	if not path.endswith('/json/version'):
		path = path + '/json/version'
	return urlunparse((parsed.scheme, parsed.netloc, path, parsed.params, parsed.query, parsed.fragment))


async def cdp_ready(endpoint: str, timeout: float = 0.5) -> bool:
	"""Return True if the CDP HTTP endpoint answers /json/version with 200."""
	if endpoint.startswith('ws'):
		# websocket endpoints cannot be probed over HTTP; let connect decide
		return True
	try:
		async with httpx.AsyncClient(timeout=timeout) as client:
			response = await client.get(version_url(endpoint))
	except httpx.HTTPError as e:
		logger.debug(f'CDP probe {endpoint} failed: {type(e).__name__}: {e}')
		return False
	return response.status_code == 200


async def fetch_ws_endpoint(endpoint: str, timeout: float = 2.0) -> str:
	"""Resolve the browser-level webSocketDebuggerUrl behind an HTTP CDP endpoint."""
	async with httpx.AsyncClient(timeout=timeout) as client:
		response = await client.get(version_url(endpoint))
		response.raise_for_status()
		return response.json()['webSocketDebuggerUrl']
