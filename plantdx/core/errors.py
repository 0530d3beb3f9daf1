"""
Domain errors raised inside the diagnosis pipeline.

Each error carries the caller-facing failure kind and a fixed message;
the orchestrator converts them into a DiagnosisFailure at its boundary.
"""
from plantdx.api.schemas import FailureKind


class DiagnosisError(Exception):
    kind: FailureKind = FailureKind.INVALID_INPUT

    def __init__(self, user_message: str):
        super().__init__(user_message)
        self.user_message = user_message


class InvalidImageError(DiagnosisError):
    kind = FailureKind.INVALID_INPUT


class ImageTooLargeError(DiagnosisError):
    kind = FailureKind.TOO_LARGE


class UnknownCropError(DiagnosisError):
    kind = FailureKind.INVALID_INPUT
