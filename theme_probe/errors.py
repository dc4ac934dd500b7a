from __future__ import annotations


class ThemeProbeError(RuntimeError):
    default_status_code = 500

    def __init__(self, *, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code if status_code is not None else self.default_status_code


class NotFoundError(ThemeProbeError):
    default_status_code = 404


class ParseError(ThemeProbeError):
    default_status_code = 422


class RemoteUnavailableError(ThemeProbeError):
    default_status_code = 502


class ProbeCancelledError(ThemeProbeError):
    default_status_code = 504
