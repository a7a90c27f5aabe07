"""Endpoint registry - the well-known file that tells any CLI invocation where the browser lives.

The record is advisory. A browser that crashed without cleaning up leaves a
stale record behind, and callers find out by failing to connect, never by
trusting the file.
"""

import logging
import os
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

logger = logging.getLogger(__name__)


class HostRecord(BaseModel):
	"""Identifies the live browser process and its CDP endpoint."""

	model_config = ConfigDict(populate_by_name=True)

	endpoint: str
	pid: int
	launched_at: datetime = Field(alias='launchedAt', default_factory=lambda: datetime.now(timezone.utc))


class EndpointRegistry:
	"""Reads and writes the HostRecord file at a fixed path."""

	def __init__(self, path: Path | str) -> None:
		self.path = Path(path)

	@property
	def lock_path(self) -> Path:
		return self.path.with_name(self.path.name + '.lock')

	def save(self, endpoint: str, pid: int) -> HostRecord:
		"""Write the record atomically (temp file + rename in the same directory)."""
		record = HostRecord(endpoint=endpoint, pid=pid)
		self.path.parent.mkdir(parents=True, exist_ok=True)
		fd, tmp_name = tempfile.mkstemp(prefix=f'.{self.path.name}.', dir=self.path.parent)
		try:
			with os.fdopen(fd, 'w') as f:
				f.write(record.model_dump_json(by_alias=True, indent=2))
			os.replace(tmp_name, self.path)
		except BaseException:
			Path(tmp_name).unlink(missing_ok=True)
			raise
		logger.debug(f'Saved host record {self.path}: pid={pid} endpoint={endpoint}')
		return record

	def load(self) -> HostRecord | None:
		"""Return the record, or None if it is missing or unparsable."""
		try:
			return HostRecord.model_validate_json(self.path.read_text())
		except (OSError, ValueError, ValidationError) as e:
			if self.path.exists():
				logger.debug(f'Ignoring unreadable host record {self.path}: {e}')
			return None

	def remove(self) -> None:
		try:
			self.path.unlink()
		except FileNotFoundError:
			pass
		except OSError as e:
			logger.debug(f'Could not remove host record {self.path}: {e}')

	@contextmanager
	def launch_lock(self, stale_after: float = 30.0) -> Iterator[bool]:
		"""Serialize the decision to launch a browser across processes.

		Yields True when this process created the lock file and may launch,
		False when another process is already launching (the caller should wait
		for that launch's record instead). Lock files older than `stale_after`
		seconds are treated as abandoned and taken over.
		"""
		acquired = self._try_create_lock()
		if not acquired and self._lock_is_stale(stale_after):
			logger.warning(f'Reclaiming stale launch lock {self.lock_path}')
			self.lock_path.unlink(missing_ok=True)
			acquired = self._try_create_lock()

		try:
			yield acquired
		finally:
			if acquired:
				self.lock_path.unlink(missing_ok=True)

	def _try_create_lock(self) -> bool:
		self.lock_path.parent.mkdir(parents=True, exist_ok=True)
		try:
			fd = os.open(self.lock_path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o600)
		except FileExistsError:
			return False
		with os.fdopen(fd, 'w') as f:
			f.write(str(os.getpid()))
		return True

	def _lock_is_stale(self, stale_after: float) -> bool:
		try:
			age = time.time() - self.lock_path.stat().st_mtime
		except FileNotFoundError:
			return True
		return age > stale_after
