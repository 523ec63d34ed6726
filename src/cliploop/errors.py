"""Error taxonomy for assembly and loop runs.

Every error is fatal to the run that raised it. ``stage`` names the
progress step that was active when the error surfaced (see
``progress.Step``); the orchestrator fills it in if the raiser did not.
"""


class CliploopError(Exception):
    """Base class for all run failures."""

    def __init__(self, message: str, stage: str | None = None):
        super().__init__(message)
        self.stage = stage


class MediaUnreadable(CliploopError):
    """A media file could not be opened, probed, or trimmed."""


class EmptyInputSet(CliploopError):
    """No media items were supplied."""


class ZeroDurationInput(CliploopError):
    """The items can never add up to the requested duration."""


class EmptyPlaylist(CliploopError):
    """A merge was requested on a playlist with no entries."""


class InvalidFadeDuration(CliploopError):
    """A fade or overlap is negative or longer than the clip it is drawn from."""


class EngineFailure(CliploopError):
    """ffmpeg exited with an error for any other reason."""

    def __init__(
        self,
        message: str,
        command: list[str] | None = None,
        stderr: str = "",
        stage: str | None = None,
    ):
        super().__init__(message, stage=stage)
        self.command = command or []
        self.stderr = stderr
