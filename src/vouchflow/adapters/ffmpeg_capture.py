"""FFmpeg-based camera capture and WebM encoding.

The capture device probes a V4L2 node so permission and availability problems
surface before recording starts. The encoder runs FFmpeg with WebM on stdout
and a reader task that appends every chunk as it arrives; stopping sends
``q`` and reads stdout to EOF so the tail of the recording is kept.
"""

import asyncio
import errno
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID

from vouchflow.domain.campaigns import CaptureConstraints
from vouchflow.domain.errors import DeviceError, DeviceErrorKind, EncoderError
from vouchflow.domain.recording import Artifact, EncoderHandle, LiveHandle
from vouchflow.services.recording import CaptureDevice, EncoderSink

logger = logging.getLogger(__name__)

CONTENT_TYPE = "video/webm"
READ_CHUNK_BYTES = 64 * 1024
_STDERR_TAIL_BYTES = 4096


@dataclass
class V4l2CaptureDevice(CaptureDevice):
    """Camera access through a Video4Linux device node."""

    video_device: str = "/dev/video0"
    _active: set[UUID] = field(default_factory=set)

    async def acquire(self, constraints: CaptureConstraints) -> LiveHandle:
        """Check the device can be opened and hand out a live handle."""
        if self._active:
            raise DeviceError(
                DeviceErrorKind.HARDWARE_BUSY, "A live stream is already open"
            )
        path = Path(self.video_device)
        if not path.exists():
            raise DeviceError(
                DeviceErrorKind.NOT_FOUND, f"Camera device not found: {path}"
            )
        if not os.access(path, os.R_OK | os.W_OK):
            raise DeviceError(
                DeviceErrorKind.PERMISSION_DENIED, f"No access to camera: {path}"
            )
        try:
            fd = os.open(path, os.O_RDWR | os.O_NONBLOCK)
        except OSError as exc:
            raise _device_error(exc, path) from exc
        os.close(fd)

        handle = LiveHandle(device=str(path), constraints=constraints)
        self._active.add(handle.id)
        logger.info(
            "Acquired %s (%sx%s)", path, constraints.width, constraints.height
        )
        return handle

    def release(self, handle: LiveHandle) -> None:
        """Release a live handle. Safe to repeat."""
        if handle.id in self._active:
            self._active.discard(handle.id)
            logger.info("Released %s", handle.device)


def _device_error(exc: OSError, path: Path) -> DeviceError:
    if exc.errno == errno.EBUSY:
        return DeviceError(DeviceErrorKind.HARDWARE_BUSY, f"Camera is busy: {path}")
    if exc.errno in {errno.EACCES, errno.EPERM}:
        return DeviceError(
            DeviceErrorKind.PERMISSION_DENIED, f"No access to camera: {path}"
        )
    return DeviceError(DeviceErrorKind.NOT_FOUND, f"Cannot open camera {path}: {exc}")


def build_ffmpeg_command(
    live: LiveHandle, audio_device: str | None, ffmpeg_binary: str = "ffmpeg"
) -> list[str]:
    """Build an FFmpeg command that streams VP9/Opus WebM to stdout."""
    width = live.constraints.width
    height = live.constraints.height
    command = [
        ffmpeg_binary,
        "-hide_banner",
        "-loglevel",
        "error",
        "-f",
        "v4l2",
        "-i",
        live.device,
    ]
    if live.constraints.audio and audio_device:
        command += ["-f", "alsa", "-i", audio_device]
    command += [
        "-vf",
        f"scale={width}:{height}:force_original_aspect_ratio=increase,"
        f"crop={width}:{height}",
        "-c:v",
        "libvpx-vp9",
        "-deadline",
        "realtime",
        "-cpu-used",
        "8",
        "-b:v",
        "1M",
    ]
    if live.constraints.audio and audio_device:
        command += ["-c:a", "libopus"]
    command += ["-f", "webm", "pipe:1"]
    return command


@dataclass
class _Recording:
    process: asyncio.subprocess.Process
    chunks: list[bytes]
    reader: asyncio.Task
    stderr: bytearray
    stderr_reader: asyncio.Task


async def _pump(stream: asyncio.StreamReader, chunks: list[bytes]) -> None:
    while True:
        chunk = await stream.read(READ_CHUNK_BYTES)
        if not chunk:
            return
        chunks.append(chunk)


async def _pump_tail(stream: asyncio.StreamReader, buffer: bytearray) -> None:
    while True:
        chunk = await stream.read(READ_CHUNK_BYTES)
        if not chunk:
            return
        buffer.extend(chunk)
        del buffer[:-_STDERR_TAIL_BYTES]


@dataclass
class FfmpegEncoderSink(EncoderSink):
    """Encoder sink that records a live handle with an FFmpeg subprocess."""

    audio_device: str | None = "default"
    ffmpeg_binary: str = "ffmpeg"
    output_dir: Path | None = None
    warmup_seconds: float = 0.5
    stop_timeout_seconds: float = 5.0
    _recordings: dict[UUID, _Recording] = field(default_factory=dict)

    async def start(self, live: LiveHandle) -> EncoderHandle:
        """Launch FFmpeg and start collecting encoded chunks."""
        command = build_ffmpeg_command(live, self.audio_device, self.ffmpeg_binary)
        logger.debug("FFmpeg command: %s", " ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise EncoderError(f"FFmpeg not found: {self.ffmpeg_binary}") from exc
        assert process.stdout is not None
        assert process.stderr is not None

        chunks: list[bytes] = []
        stderr = bytearray()
        recording = _Recording(
            process=process,
            chunks=chunks,
            reader=asyncio.create_task(_pump(process.stdout, chunks)),
            stderr=stderr,
            stderr_reader=asyncio.create_task(_pump_tail(process.stderr, stderr)),
        )
        await asyncio.sleep(self.warmup_seconds)
        if process.returncode is not None:
            await asyncio.gather(recording.reader, recording.stderr_reader)
            message = stderr.decode("utf-8", errors="ignore").strip()
            raise EncoderError(f"FFmpeg exited during startup: {message}")

        handle = EncoderHandle(live=live)
        self._recordings[handle.id] = recording
        logger.info("Encoding started (pid %s)", process.pid)
        return handle

    async def stop(self, handle: EncoderHandle) -> Artifact:
        """Stop FFmpeg gracefully and return everything it wrote."""
        recording = self._recordings.pop(handle.id, None)
        if recording is None:
            raise EncoderError("Encoder is not running")
        process = recording.process
        if process.returncode is None and process.stdin is not None:
            try:
                process.stdin.write(b"q")
                await process.stdin.drain()
                process.stdin.close()
            except (BrokenPipeError, ConnectionResetError):
                logger.debug("FFmpeg stdin already closed")
        try:
            await asyncio.wait_for(process.wait(), self.stop_timeout_seconds)
        except TimeoutError:
            logger.warning("FFmpeg didn't stop gracefully, killing it")
            process.kill()
            await process.wait()
        await asyncio.gather(recording.reader, recording.stderr_reader)

        data = b"".join(recording.chunks)
        if not data:
            message = recording.stderr.decode("utf-8", errors="ignore").strip()
            raise EncoderError(f"FFmpeg produced no output: {message}")
        path = self._write(data)
        logger.info("Recording finalized: %s (%s bytes)", path, len(data))
        return Artifact(data=data, content_type=CONTENT_TYPE, path=path)

    def _write(self, data: bytes) -> Path:
        fd, name = tempfile.mkstemp(
            prefix="vouchflow-", suffix=".webm", dir=self.output_dir
        )
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        return Path(name)
