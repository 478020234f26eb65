"""
Error taxonomy. None of these is fatal to the process.
"""


class MoodSpoilerError(Exception):
    pass


class BackendUnavailableError(MoodSpoilerError):
    """A detector backend failed to initialize or timed out."""


class SampleTransientError(MoodSpoilerError):
    """A single sampling tick failed; the previous sample stays current."""


class CameraUnavailableError(MoodSpoilerError):
    pass


class ReplyError(MoodSpoilerError):
    """Base for reply-engine failures; the user sees the fallback message."""


class ReplyTransportError(ReplyError):
    """Network failure or non-2xx status from the reply engine."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class ReplyContentError(ReplyError):
    """Malformed, absent or empty reply content."""


class ConversationBusyError(MoodSpoilerError):
    """A reply is already being composed."""


class EmptyMessageError(MoodSpoilerError, ValueError):
    pass
