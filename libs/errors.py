# =============================================================================
# Pipeline Errors
# =============================================================================
# Error taxonomy shared by the Dagster code and the webapp.
# =============================================================================

"""
Error types for the training pipeline.

- InvalidInputError: bad caller input, never retried
- ProviderError: transient upstream failure, retried by the next poll tick only
- NotFoundError: referenced dataset/operation/handle is missing
- ExportParseError / AmbiguousArtifactError: unexpected export layout, fatal
  to the current export resolution
"""

from typing import Any, Optional

__all__ = [
    "PipelineError",
    "InvalidInputError",
    "ProviderError",
    "NotFoundError",
    "ExportParseError",
    "AmbiguousArtifactError",
]


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class InvalidInputError(PipelineError):
    """Caller supplied invalid input."""


class ProviderError(PipelineError):
    """
    The ML provider failed (transport, auth or server error).

    Must never be interpreted as a completed operation.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class NotFoundError(PipelineError):
    """A dataset, operation or provider handle does not exist."""


class ExportParseError(PipelineError):
    """An export folder name does not match the expected timestamp format."""


class AmbiguousArtifactError(PipelineError):
    """Zero or several files matched an export artifact pattern."""
