"""Artifact store errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

from conveyor.errors.base import ConveyorError

if TYPE_CHECKING:
    from conveyor.error_codes import ErrorCode


class ArtifactError(ConveyorError):
    """Base class for artifact errors.

    Contains the run and artifact name for troubleshooting.
    """

    code: int = 200

    def __init__(
        self,
        message: str,
        *,
        run_id: str | None = None,
        name: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.run_id = run_id
        self.name = name


class DuplicateArtifactError(ArtifactError):
    """An artifact name was written twice within one run."""

    code: int = 201

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.DUPLICATE_ARTIFACT


class ArtifactNotFoundError(ArtifactError):
    """An artifact name was never written in the current run."""

    code: int = 202

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.MISSING_ARTIFACT


# A declared stage input that was never produced.
MissingArtifactError = ArtifactNotFoundError
