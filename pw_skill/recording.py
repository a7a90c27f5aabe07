"""Video recording of the shared browser.

`pw record-start` runs a recorder process that owns a dedicated browser
context with video capture enabled. `pw record-stop` asks it to finish via a
control file; the recorder closes the context, compresses the raw WebM to
MP4 and removes its descriptor, which is what record-stop waits for.
"""

import argparse
import asyncio
import logging
import os
import shutil
import signal
import subprocess
import sys
import tempfile
import time
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from pw_skill.config import SkillConfig
from pw_skill.endpoint import EndpointRegistry
from pw_skill.exceptions import BrowserNotRunningError, RecordingError

try:
	import imageio_ffmpeg  # type: ignore[import-not-found]

	IMAGEIO_FFMPEG_AVAILABLE = True
except ImportError:
	IMAGEIO_FFMPEG_AVAILABLE = False

logger = logging.getLogger(__name__)

# Marker query on the recorder's first page; lets hosts find the recording context
RECORDING_MARKER = 'recording=true'
STOP_SIGNAL = 'stop'
CONTROL_POLL_INTERVAL = 0.5
STOP_WAIT_TIMEOUT = 60.0
DEFAULT_WIDTH = 1280
DEFAULT_HEIGHT = 720


class RecordingInfo(BaseModel):
	output_path: str
	video_dir: str
	started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
	width: int = DEFAULT_WIDTH
	height: int = DEFAULT_HEIGHT
	pid: int


class RecordingStore:
	"""Descriptor and control files shared by the recorder and everyone else."""

	def __init__(self, config: SkillConfig) -> None:
		self.path = config.recording_path
		self.control_path = config.recording_control_path

	def save(self, info: RecordingInfo) -> None:
		self.path.parent.mkdir(parents=True, exist_ok=True)
		self.path.write_text(info.model_dump_json(indent=2))

	def load(self) -> RecordingInfo | None:
		try:
			return RecordingInfo.model_validate_json(self.path.read_text())
		except (OSError, ValueError, ValidationError):
			return None

	def is_active(self) -> bool:
		return self.path.exists()

	def remove(self) -> None:
		self.path.unlink(missing_ok=True)

	def request_stop(self) -> None:
		self.control_path.write_text(STOP_SIGNAL)

	def stop_requested(self) -> bool:
		try:
			return self.control_path.read_text().strip() == STOP_SIGNAL
		except OSError:
			return False

	def clear_control(self) -> None:
		self.control_path.unlink(missing_ok=True)


def normalize_output_path(output: str | None, cwd: Path) -> Path:
	name = output or f'recording-{int(time.time() * 1000)}.mp4'
	if name.endswith('.webm'):
		name = name[: -len('.webm')] + '.mp4'
	path = Path(name).expanduser()
	return path if path.is_absolute() else cwd / path


async def compress_video(raw_path: Path, output_path: Path) -> Path:
	"""Re-encode the raw WebM to H.264 MP4. Keeps the WebM if no encoder is available."""
	output_path.parent.mkdir(parents=True, exist_ok=True)
	if not IMAGEIO_FFMPEG_AVAILABLE:
		fallback = output_path.with_suffix('.webm')
		logger.error('MP4 compression requires optional dependencies. Please install them with: pip install "pw-skill[video]"')
		shutil.copyfile(raw_path, fallback)
		return fallback

	proc = await asyncio.create_subprocess_exec(
		imageio_ffmpeg.get_ffmpeg_exe(),
		'-i',
		str(raw_path),
		'-c:v',
		'libx264',
		'-crf',
		'23',
		'-preset',
		'medium',
		'-y',
		str(output_path),
		stdin=subprocess.DEVNULL,
		stdout=subprocess.DEVNULL,
		stderr=subprocess.PIPE,
	)
	_, stderr = await proc.communicate()
	if proc.returncode != 0:
		raise RecordingError(f'ffmpeg exited with code {proc.returncode}: {stderr.decode(errors="replace")[-500:]}')
	return output_path


async def record(config: SkillConfig, output_path: Path, width: int, height: int) -> int:
	"""Foreground recorder. Returns the process exit code."""
	from playwright.async_api import async_playwright

	host = EndpointRegistry(config.host_record_path).load()
	if host is None:
		raise BrowserNotRunningError()

	store = RecordingStore(config)
	store.clear_control()
	video_dir = Path(tempfile.mkdtemp(prefix='pw-skill-videos-'))

	loop = asyncio.get_running_loop()
	aborted = asyncio.Event()
	for sig in (signal.SIGINT, signal.SIGTERM):
		loop.add_signal_handler(sig, aborted.set)

	async with async_playwright() as p:
		browser = await p.chromium.connect_over_cdp(host.endpoint, timeout=config.cdp_connect_timeout_ms)
		context = await browser.new_context(
			record_video_dir=str(video_dir),
			record_video_size={'width': width, 'height': height},
			viewport={'width': width, 'height': height},
		)
		page = await context.new_page()
		await page.goto(f'about:blank?{RECORDING_MARKER}')

		store.save(
			RecordingInfo(output_path=str(output_path), video_dir=str(video_dir), width=width, height=height, pid=os.getpid())
		)
		print(f'Recording started (PID {os.getpid()})')
		print(f'Output: {output_path}')
		print(f'Size: {width}x{height}')
		print('Stop with: pw record-stop', flush=True)

		while not aborted.is_set() and not store.stop_requested():
			await asyncio.sleep(CONTROL_POLL_INTERVAL)

		if aborted.is_set():
			logger.info('Aborting recording')
			await context.close()
			shutil.rmtree(video_dir, ignore_errors=True)
			store.remove()
			return 1

		store.clear_control()
		# closing the context finalizes the video file
		await context.close()
		await asyncio.sleep(0.5)

		try:
			raw = next(video_dir.glob('*.webm'), None)
			if raw is None:
				logger.error('No video file found')
			else:
				print('Compressing video...', flush=True)
				saved = await compress_video(raw, output_path)
				print(f'Video saved: {saved}')
		finally:
			shutil.rmtree(video_dir, ignore_errors=True)
			store.remove()

	print('Recording stopped')
	return 0


def start_background(config: SkillConfig, output: str | None, width: int, height: int, cwd: Path | None = None) -> int:
	"""Spawn the recorder detached and report once its descriptor appears."""
	store = RecordingStore(config)
	if store.is_active():
		info = store.load()
		print(f'Recording already in progress (PID {info.pid if info else "?"})', file=sys.stderr)
		return 1
	if EndpointRegistry(config.host_record_path).load() is None:
		print(BrowserNotRunningError(), file=sys.stderr)
		return 1

	output_path = normalize_output_path(output, cwd or Path.cwd())
	cmd = [
		sys.executable,
		'-m',
		'pw_skill.recording',
		str(output_path),
		'--width',
		str(width),
		'--height',
		str(height),
		'--fg',
	]
	subprocess.Popen(
		cmd,
		start_new_session=True,
		stdin=subprocess.DEVNULL,
		stdout=subprocess.DEVNULL,
		stderr=subprocess.DEVNULL,
	)

	deadline = time.monotonic() + config.server_ready_timeout
	while time.monotonic() < deadline:
		info = store.load()
		if info is not None:
			print(f'Recording started (PID {info.pid})')
			print(f'Output: {info.output_path}')
			print(f'Size: {info.width}x{info.height}')
			print('Stop with: pw record-stop')
			return 0
		time.sleep(0.2)

	print('Error: Recording did not start', file=sys.stderr)
	return 1


def stop(config: SkillConfig, timeout: float = STOP_WAIT_TIMEOUT) -> int:
	"""Signal the recorder to finish and wait for it to remove its descriptor."""
	store = RecordingStore(config)
	if not store.is_active():
		print('No recording in progress', file=sys.stderr)
		return 1

	store.request_stop()
	print('Stop signal sent. Waiting for video to be saved...')

	deadline = time.monotonic() + timeout
	while time.monotonic() < deadline:
		if not store.is_active():
			return 0
		time.sleep(CONTROL_POLL_INTERVAL)

	print('Timeout waiting for recording to finish', file=sys.stderr)
	return 1


def main(argv: list[str] | None = None) -> int:
	"""Entry point for `python -m pw_skill.recording`."""
	from pw_skill.logging_config import setup_logging

	parser = argparse.ArgumentParser(prog='pw record-start', description='Record the shared browser to a video file')
	parser.add_argument('output', nargs='?', help='Output file (.mp4)')
	parser.add_argument('--width', type=int, default=DEFAULT_WIDTH)
	parser.add_argument('--height', type=int, default=DEFAULT_HEIGHT)
	parser.add_argument('--fg', action='store_true', help='Record in the foreground')
	args = parser.parse_args(argv)

	config = SkillConfig.from_env()
	setup_logging(config.logging_level)

	if not args.fg:
		return start_background(config, args.output, args.width, args.height)

	output_path = normalize_output_path(args.output, Path.cwd())
	try:
		return asyncio.run(record(config, output_path, args.width, args.height))
	except BrowserNotRunningError as e:
		print(e, file=sys.stderr)
		return 1


if __name__ == '__main__':
	sys.exit(main())
