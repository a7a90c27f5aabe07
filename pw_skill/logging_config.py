import logging
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'


def setup_logging(level: str = 'info') -> None:
	"""Route all pw_skill logging to stderr.

	stdout belongs to the JSON-RPC channel in the host process and to command
	output in the CLI, so nothing may log there.
	"""
	log_level = getattr(logging, level.upper(), logging.INFO)
	logging.basicConfig(
		level=log_level,
		format=LOG_FORMAT,
		handlers=[logging.StreamHandler(sys.stderr)],
		force=True,
	)
	# playwright's driver and httpx are noisy at INFO
	for name in ('httpx', 'httpcore', 'asyncio'):
		logging.getLogger(name).setLevel(max(log_level, logging.WARNING))
