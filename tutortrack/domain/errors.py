from __future__ import annotations


class TutorTrackError(Exception):
    """Base class for every error raised by the earnings core."""


class ConfigError(TutorTrackError):
    pass


class MalformedSessionError(TutorTrackError):
    """A session record whose time or money fields cannot be used."""

    def __init__(self, session_id: str | None, reason: str) -> None:
        self.session_id = session_id
        self.reason = reason
        super().__init__(f"session {session_id or '<no id>'}: {reason}")


class TimezoneResolutionError(TutorTrackError):
    def __init__(self, timezone_name: str | None, reason: str = "unknown timezone") -> None:
        self.timezone_name = timezone_name
        self.reason = reason
        super().__init__(f"{timezone_name!r}: {reason}")


class StoreError(TutorTrackError):
    """Raised by store adapters when a read against the record store fails."""


class ClassificationError(TutorTrackError):
    def __init__(self, tutor_id: str, cause: BaseException | None = None) -> None:
        self.tutor_id = tutor_id
        self.cause = cause
        super().__init__(f"could not count sessions for tutor {tutor_id}: {cause}")


class FetchError(TutorTrackError):
    """Both read paths failed; no aggregate is produced for the request."""

    def __init__(self, tutor_id: str, errors: tuple[BaseException, ...]) -> None:
        self.tutor_id = tutor_id
        self.errors = errors
        detail = "; ".join(str(e) for e in errors) or "unknown error"
        super().__init__(f"could not fetch sessions for tutor {tutor_id}: {detail}")
