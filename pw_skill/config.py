"""Runtime configuration, read from PW_SKILL_* environment variables (and .env)."""

import os
import tempfile
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = 'PW_SKILL_'


class SkillConfig(BaseModel):
	"""Settings shared by the CLI, the host process, the launcher and the recorder."""

	model_config = ConfigDict(frozen=True)

	cdp_host: str = 'localhost'
	cdp_port: int = Field(default=9222, ge=1, le=65535)
	headless: bool = False
	devtools: bool = False

	state_dir: Path = Field(default_factory=lambda: Path(tempfile.gettempdir()))
	storage_state_file: str = Field(
		default='playwright/storage.json', description='Saved cookies/storage, relative to the caller working directory'
	)

	cdp_connect_timeout_ms: int = 10_000
	launch_poll_attempts: int = 30
	launch_poll_interval: float = 0.5
	launch_lock_stale_after: float = 30.0

	action_timeout_ms: int = 5_000
	navigation_timeout_ms: int = 60_000
	completion_timeout_ms: int = 5_000
	settle_delay_ms: int = 500

	watchdog_delay: float = 15.0
	server_ready_timeout: float = 10.0
	request_timeout: float = 120.0

	logging_level: str = 'info'

	@property
	def cdp_endpoint(self) -> str:
		return f'http://{self.cdp_host}:{self.cdp_port}'

	@property
	def host_record_path(self) -> Path:
		return self.state_dir / 'pw-skill-cdp.json'

	@property
	def recording_path(self) -> Path:
		return self.state_dir / 'pw-skill-recording.json'

	@property
	def recording_control_path(self) -> Path:
		return self.state_dir / 'pw-skill-recording-control'

	@property
	def server_log_path(self) -> Path:
		return self.state_dir / 'pw-skill-server.log'

	@classmethod
	def from_env(cls, environ: dict[str, str] | None = None) -> 'SkillConfig':
		"""Build config from the environment.

		Every field maps to PW_SKILL_<FIELD NAME UPPERCASED>, e.g. PW_SKILL_CDP_PORT=9333.
		A .env file in the working directory is loaded first, without overriding
		variables that are already set. Values are coerced by pydantic.
		"""
		if environ is None:
			load_dotenv()
			environ = dict(os.environ)

		values: dict[str, Any] = {}
		for name in cls.model_fields:
			raw = environ.get(f'{ENV_PREFIX}{name.upper()}')
			if raw is not None and raw != '':
				values[name] = raw
		return cls.model_validate(values)
