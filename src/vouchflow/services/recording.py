"""Recording session state machine for in-browser style testimonial capture.

One controller drives one recording attempt: it acquires the camera, runs the
countdown, times a single continuous capture while the customer moves between
prompts, and then uploads the finished artifact. Transitions are serialized
through one lock. The lock is released while waiting on the camera or the
upload, so abandonment is never blocked; the waiting side re-checks the epoch
and stage once it resumes.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

from vouchflow.domain.campaigns import CampaignParameters, CaptureConstraints
from vouchflow.domain.errors import (
    DeviceError,
    DeviceErrorKind,
    MetadataFetchError,
    MetadataFetchErrorKind,
    TimerFault,
    UploadError,
    UploadErrorKind,
    VouchflowError,
)
from vouchflow.domain.recording import (
    Artifact,
    EncoderHandle,
    LiveHandle,
    RemoteReference,
    Session,
    Stage,
    SubmissionRecord,
    UploadProgress,
)
from vouchflow.services.scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

COUNTDOWN_TICKS = 3
TICK_SECONDS = 1.0
DEFAULT_MAX_DURATION_SECONDS = 60

ProgressCallback = Callable[[UploadProgress], None]


class CaptureDevice(Protocol):
    """Acquires and releases the camera and microphone."""

    async def acquire(self, constraints: CaptureConstraints) -> LiveHandle:
        """Open a live stream or raise DeviceError."""

    def release(self, handle: LiveHandle) -> None:
        """Release a live stream. Idempotent."""


class EncoderSink(Protocol):
    """Accumulates encoded chunks from a live stream into an artifact."""

    async def start(self, live: LiveHandle) -> EncoderHandle:
        """Begin encoding the live stream."""

    async def stop(self, handle: EncoderHandle) -> Artifact:
        """Finalize encoding, including every chunk emitted before the stop."""


class UploadTransport(Protocol):
    """Sends artifacts to remote storage."""

    async def upload(
        self, artifact: Artifact, on_progress: ProgressCallback
    ) -> RemoteReference:
        """Upload an artifact, reporting progress, or raise UploadError."""

    def thumbnail_url(self, reference: RemoteReference) -> str:
        """Derive a preview image reference without a network call."""


class CampaignProvider(Protocol):
    """Supplies campaign parameters."""

    def fetch_campaign(self, campaign_id: str) -> CampaignParameters:
        """Return parameters or raise MetadataFetchError."""


class SubmissionRecorder(Protocol):
    """Persists a successful submission."""

    def record_submission(self, submission: SubmissionRecord) -> object:
        """Store the submission metadata."""


class PreviewSink(Protocol):
    """Displays the live camera stream while recording."""

    def show_live(self, handle: LiveHandle) -> None:
        """Bind the live stream to the preview."""

    def clear(self) -> None:
        """Detach any live stream from the preview."""


@dataclass
class RecordingSessionController:
    """Drives one recording attempt from camera acquisition to submission."""

    campaign_id: str
    campaign_provider: CampaignProvider
    capture_device: CaptureDevice
    encoder: EncoderSink
    transport: UploadTransport
    recorder: SubmissionRecorder
    scheduler: Scheduler
    max_duration_seconds: int = DEFAULT_MAX_DURATION_SECONDS
    preview: PreviewSink | None = None
    on_change: Callable[[Session], None] | None = None
    session: Session = field(init=False)
    _lock: asyncio.Lock = field(init=False, default_factory=asyncio.Lock)
    _live: LiveHandle | None = field(init=False, default=None)
    _encoding: EncoderHandle | None = field(init=False, default=None)
    _countdown_timer: TimerHandle | None = field(init=False, default=None)
    _elapsed_timer: TimerHandle | None = field(init=False, default=None)
    _epoch: int = field(init=False, default=0)
    _uploaded: tuple[Artifact, RemoteReference] | None = field(
        init=False, default=None
    )

    def __post_init__(self) -> None:
        if self.max_duration_seconds <= 0:
            raise ValueError("max_duration_seconds must be positive")
        self.session = Session(
            campaign=None, max_duration_seconds=self.max_duration_seconds
        )

    async def __aenter__(self) -> "RecordingSessionController":
        return self

    async def __aexit__(self, *_exc_info: object) -> None:
        await self.abandon()

    @property
    def stage(self) -> Stage:
        return self.session.stage

    async def load(self) -> bool:
        """Fetch campaign parameters. A failure ends the session."""
        async with self._lock:
            if self.session.stage is not Stage.IDLE:
                return self._ignore("load")
            return self._load_locked()

    async def start(self) -> bool:
        """Request the camera and, once granted, run the countdown."""
        async with self._lock:
            if self.session.stage is not Stage.IDLE:
                return self._ignore("start")
            if self.session.campaign is None and not self._load_locked():
                return False
            epoch = self._request_device()
        return await self._await_device(epoch)

    async def select_prompt(self, index: int) -> bool:
        """Show prompt ``index`` without interrupting the capture."""
        async with self._lock:
            if self.session.stage is not Stage.CAPTURING:
                return self._ignore("select_prompt")
            if not 0 <= index < len(self.session.prompts):
                logger.warning("Prompt index %s out of range", index)
                return False
            self.session.prompt_index = index
            self.session.visited_prompts.add(index)
            self._notify()
            return True

    async def next_prompt(self) -> bool:
        """Advance to the following prompt, if any."""
        last = len(self.session.prompts) - 1
        return await self.select_prompt(min(self.session.prompt_index + 1, last))

    async def previous_prompt(self) -> bool:
        """Go back to the preceding prompt, if any."""
        return await self.select_prompt(max(self.session.prompt_index - 1, 0))

    async def stop(self) -> bool:
        """Stop capturing and finalize the artifact for review."""
        async with self._lock:
            if self.session.stage is not Stage.CAPTURING:
                return self._ignore("stop")
            await self._finish_capture()
            return True

    async def retake(self) -> bool:
        """Discard the recorded artifact and start over with a fresh device."""
        async with self._lock:
            if self.session.stage is not Stage.CAPTURED:
                return self._ignore("retake")
            self._discard_artifact()
            self._release_live()
            self.session.visited_prompts.clear()
            self.session.error = None
            self.session.progress = None
            epoch = self._request_device()
        return await self._await_device(epoch)

    async def submit(self) -> bool:
        """Upload the artifact and record the submission."""
        async with self._lock:
            artifact = self.session.artifact
            if self.session.stage is not Stage.CAPTURED or artifact is None:
                return self._ignore("submit")
            campaign = self._require_campaign()
            if campaign.is_demo:
                self._finish(Stage.SUBMITTED)
                return True
            self.session.error = None
            self.session.progress = UploadProgress(0, artifact.byte_length)
            self._set_stage(Stage.UPLOADING)
            epoch = self._epoch

        try:
            remote = await self._upload(artifact)
        except UploadError as exc:
            async with self._lock:
                if self._is_current(epoch, Stage.UPLOADING):
                    self._return_to_review(exc)
            return False

        async with self._lock:
            if not self._is_current(epoch, Stage.UPLOADING):
                logger.info("Session ended during upload of %s", artifact.local_id)
                return False
            submission = SubmissionRecord(
                campaign_id=campaign.campaign_id,
                remote_video_ref=remote,
                thumbnail_ref=self.transport.thumbnail_url(remote),
                duration_seconds=artifact.duration_seconds,
                idempotency_key=artifact.local_id,
            )
            try:
                self.recorder.record_submission(submission)
            except Exception as exc:
                logger.exception("Failed to record submission %s", artifact.local_id)
                self._return_to_review(UploadError(UploadErrorKind.SERVER, str(exc)))
                return False
            self._finish(Stage.SUBMITTED)
            return True

    async def abandon(self) -> bool:
        """Tear down a session the user navigated away from.

        Never waits on the device or the network, so it also ends a session
        whose camera request or upload is still pending.
        """
        async with self._lock:
            if self.session.is_terminal:
                return False
            await self._teardown()
            self._set_stage(Stage.ABANDONED)
            return True

    def _load_locked(self) -> bool:
        try:
            self.session.campaign = self.campaign_provider.fetch_campaign(
                self.campaign_id
            )
        except MetadataFetchError as exc:
            self._fail_now(exc)
            return False
        except Exception as exc:
            logger.exception("Campaign provider failed for %s", self.campaign_id)
            self._fail_now(
                MetadataFetchError(MetadataFetchErrorKind.UNAVAILABLE, str(exc))
            )
            return False
        self._notify()
        return True

    def _require_campaign(self) -> CampaignParameters:
        if self.session.campaign is None:
            raise RuntimeError("Campaign parameters are not loaded")
        return self.session.campaign

    def _request_device(self) -> int:
        self._set_stage(Stage.AWAITING_DEVICE)
        return self._epoch

    async def _await_device(self, epoch: int) -> bool:
        constraints = self._require_campaign().constraints
        try:
            live = await self.capture_device.acquire(constraints)
        except Exception as exc:
            async with self._lock:
                if self._is_current(epoch, Stage.AWAITING_DEVICE):
                    await self._fail(_as_device_error(exc))
            return False

        async with self._lock:
            if not self._is_current(epoch, Stage.AWAITING_DEVICE):
                logger.info("Device granted after the session ended, releasing it")
                self.capture_device.release(live)
                return False
            self._live = live
            if self.preview is not None:
                self.preview.show_live(live)
            self._enter_countdown()
            return True

    def _enter_countdown(self) -> None:
        self._epoch += 1
        self.session.elapsed_seconds = 0
        self.session.visited_prompts.clear()
        self.session.countdown_remaining = COUNTDOWN_TICKS
        self._set_stage(Stage.COUNTDOWN)
        self._countdown_timer = self._schedule(Stage.COUNTDOWN, self._countdown_tick)

    async def _countdown_tick(self) -> None:
        self._countdown_timer = None
        remaining = (self.session.countdown_remaining or 1) - 1
        if remaining > 0:
            self.session.countdown_remaining = remaining
            self._countdown_timer = self._schedule(
                Stage.COUNTDOWN, self._countdown_tick
            )
            self._notify()
            return
        self.session.countdown_remaining = None
        await self._begin_capture()

    async def _begin_capture(self) -> None:
        if self._live is None:
            raise RuntimeError("No live stream to encode")
        try:
            self._encoding = await self.encoder.start(self._live)
        except Exception as exc:
            logger.exception("Encoder failed to start")
            await self._fail(_as_device_error(exc))
            return
        self.session.elapsed_seconds = 0
        self.session.prompt_index = 0
        self.session.visited_prompts = {0}
        self._set_stage(Stage.CAPTURING)
        self._elapsed_timer = self._schedule(Stage.CAPTURING, self._elapsed_tick)

    async def _elapsed_tick(self) -> None:
        self._elapsed_timer = None
        self.session.elapsed_seconds += 1
        if self.session.elapsed_seconds >= self.max_duration_seconds:
            logger.info(
                "Reached %ss limit, stopping capture", self.max_duration_seconds
            )
            await self._finish_capture()
            return
        self._elapsed_timer = self._schedule(Stage.CAPTURING, self._elapsed_tick)
        self._notify()

    async def _finish_capture(self) -> None:
        self._cancel_timers()
        encoding, self._encoding = self._encoding, None
        if encoding is None:
            raise RuntimeError("Encoder is not running")
        try:
            artifact = await self.encoder.stop(encoding)
        except Exception as exc:
            logger.exception("Encoder failed to finalize")
            await self._fail(_as_device_error(exc))
            return
        artifact.duration_seconds = self.session.elapsed_seconds
        self._release_live()
        self.session.artifact = artifact
        self.session.error = None
        self._set_stage(Stage.CAPTURED)

    async def _upload(self, artifact: Artifact) -> RemoteReference:
        if self._uploaded is not None and self._uploaded[0] is artifact:
            logger.info("Artifact %s already uploaded, reusing", artifact.local_id)
            return self._uploaded[1]
        try:
            remote = await self.transport.upload(artifact, self._on_progress)
        except UploadError:
            raise
        except Exception as exc:
            raise UploadError(UploadErrorKind.NETWORK, str(exc)) from exc
        self._uploaded = (artifact, remote)
        return remote

    def _on_progress(self, progress: UploadProgress) -> None:
        if self.session.stage is not Stage.UPLOADING:
            return
        current = self.session.progress
        if current is not None and progress.percentage < current.percentage:
            return
        self.session.progress = progress
        self._notify()

    def _return_to_review(self, error: UploadError) -> None:
        logger.warning("Upload failed (%s): %s", error.kind.value, error)
        self.session.error = error
        self._set_stage(Stage.CAPTURED)

    def _schedule(
        self, stage: Stage, handler: Callable[[], Awaitable[None]]
    ) -> TimerHandle:
        epoch = self._epoch

        async def _fire() -> None:
            async with self._lock:
                try:
                    self._check_timer(epoch, stage)
                except TimerFault as fault:
                    logger.warning("Dropped stale timer: %s", fault)
                    return
                await handler()

        return self.scheduler.call_later(TICK_SECONDS, _fire)

    def _check_timer(self, epoch: int, stage: Stage) -> None:
        if epoch != self._epoch or self.session.stage is not stage:
            raise TimerFault(
                f"{stage.value} timer from epoch {epoch} fired in "
                f"{self.session.stage.value} (epoch {self._epoch})"
            )

    def _is_current(self, epoch: int, stage: Stage) -> bool:
        return epoch == self._epoch and self.session.stage is stage

    def _cancel_timers(self) -> None:
        for timer in (self._countdown_timer, self._elapsed_timer):
            if timer is not None:
                timer.cancel()
        self._countdown_timer = None
        self._elapsed_timer = None

    def _release_live(self) -> None:
        live, self._live = self._live, None
        if live is not None:
            self.capture_device.release(live)
        if self.preview is not None:
            self.preview.clear()

    def _discard_artifact(self) -> None:
        artifact, self.session.artifact = self.session.artifact, None
        self._uploaded = None
        if artifact is not None:
            artifact.revoke()

    async def _teardown(self) -> None:
        self._cancel_timers()
        self._epoch += 1
        self.session.countdown_remaining = None
        encoding, self._encoding = self._encoding, None
        if encoding is not None:
            try:
                partial = await self.encoder.stop(encoding)
            except Exception:
                logger.exception("Encoder failed while tearing down")
            else:
                partial.revoke()
        self._release_live()
        self._discard_artifact()

    def _finish(self, stage: Stage) -> None:
        self._release_live()
        if self.session.artifact is not None:
            self.session.artifact.revoke()
        self._set_stage(stage)

    async def _fail(self, error: VouchflowError) -> None:
        await self._teardown()
        self._fail_now(error)

    def _fail_now(self, error: VouchflowError) -> None:
        logger.warning("Recording session failed: %s", error)
        self.session.error = error
        self._set_stage(Stage.FAILED)

    def _set_stage(self, stage: Stage) -> None:
        if stage is not self.session.stage:
            logger.info(
                "Session %s: %s -> %s",
                self.campaign_id,
                self.session.stage.value,
                stage.value,
            )
        self.session.stage = stage
        self._notify()

    def _ignore(self, event: str) -> bool:
        logger.warning(
            "Ignoring %s while session is %s", event, self.session.stage.value
        )
        return False

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.session)


def _as_device_error(exc: Exception) -> DeviceError:
    """Map leaf failures onto the device error taxonomy."""
    if isinstance(exc, DeviceError):
        return exc
    if isinstance(exc, PermissionError):
        return DeviceError(DeviceErrorKind.PERMISSION_DENIED, str(exc))
    if isinstance(exc, FileNotFoundError):
        return DeviceError(DeviceErrorKind.NOT_FOUND, str(exc))
    return DeviceError(DeviceErrorKind.HARDWARE_BUSY, str(exc))


@dataclass
class RecordingSessionFactory:
    """Creates one controller per recording link visit."""

    campaign_provider: CampaignProvider
    capture_device: CaptureDevice
    encoder: EncoderSink
    transport: UploadTransport
    recorder: SubmissionRecorder
    scheduler: Scheduler
    max_duration_seconds: int = DEFAULT_MAX_DURATION_SECONDS

    def create(
        self,
        campaign_id: str,
        preview: PreviewSink | None = None,
        on_change: Callable[[Session], None] | None = None,
    ) -> RecordingSessionController:
        """Return a fresh controller for a campaign."""
        return RecordingSessionController(
            campaign_id=campaign_id,
            campaign_provider=self.campaign_provider,
            capture_device=self.capture_device,
            encoder=self.encoder,
            transport=self.transport,
            recorder=self.recorder,
            scheduler=self.scheduler,
            max_duration_seconds=self.max_duration_seconds,
            preview=preview,
            on_change=on_change,
        )
