"""Error taxonomy surfaced by the recording flow."""

from enum import Enum


class VouchflowError(Exception):
    """Base class for errors that may reach the presentation layer."""

    user_message = "Something went wrong."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail


class DeviceErrorKind(str, Enum):
    """Reasons a camera/microphone could not be acquired."""

    PERMISSION_DENIED = "permission-denied"
    NOT_FOUND = "not-found"
    HARDWARE_BUSY = "hardware-busy"


class DeviceError(VouchflowError):
    """Camera or microphone unavailable. Fatal for the session."""

    _MESSAGES = {
        DeviceErrorKind.PERMISSION_DENIED: (
            "Unable to access camera. Please check permissions."
        ),
        DeviceErrorKind.NOT_FOUND: "No camera or microphone was found.",
        DeviceErrorKind.HARDWARE_BUSY: (
            "Your camera is in use by another application. Close it and try again."
        ),
    }

    def __init__(self, kind: DeviceErrorKind, detail: str | None = None) -> None:
        self.kind = kind
        self.user_message = self._MESSAGES[kind]
        super().__init__(detail)


class EncoderError(VouchflowError):
    """Raised by encoder sinks; mapped to a device error by the controller."""


class TimerFault(VouchflowError):
    """A timer fired into a stage it no longer belongs to."""


class UploadErrorKind(str, Enum):
    """Upload failure categories."""

    NETWORK = "network"
    SERVER = "server"


class UploadError(VouchflowError):
    """Upload or submission failed. Recoverable: the artifact is kept."""

    def __init__(
        self,
        kind: UploadErrorKind,
        detail: str | None = None,
        status: int | None = None,
    ) -> None:
        self.kind = kind
        self.status = status
        if kind is UploadErrorKind.NETWORK:
            self.user_message = (
                "Upload interrupted. Check your connection and submit again."
            )
        else:
            self.user_message = "We couldn't save your video. Please submit again."
        super().__init__(detail)


class MetadataFetchErrorKind(str, Enum):
    """Campaign lookup failure categories."""

    NOT_FOUND = "not-found"
    UNAVAILABLE = "unavailable"


class MetadataFetchError(VouchflowError):
    """Campaign could not be loaded. Fatal before a session starts."""

    def __init__(
        self, kind: MetadataFetchErrorKind, detail: str | None = None
    ) -> None:
        self.kind = kind
        if kind is MetadataFetchErrorKind.NOT_FOUND:
            self.user_message = "This campaign link is invalid or has been removed."
        else:
            self.user_message = "We couldn't load this campaign. Try again later."
        super().__init__(detail)
