"""Configuration-shape errors, reported before any run starts."""

from __future__ import annotations

from typing import TYPE_CHECKING

from conveyor.errors.base import ConveyorError

if TYPE_CHECKING:
    from conveyor.config_validation import ValidationError
    from conveyor.error_codes import ErrorCode


class ConfigurationError(ConveyorError):
    """Invalid configuration.

    Raised during initialization when settings or a pipeline definition
    are invalid. Usually indicates a deployment or setup issue.
    """

    code: int = 104

    @property
    def error_code(self) -> ErrorCode:
        if self._error_code is not None:
            return self._error_code
        from conveyor.error_codes import ErrorCode

        return ErrorCode.CONFIGURATION_INVALID


class PipelineDefinitionError(ConfigurationError):
    """A pipeline definition failed static validation.

    Carries every problem found, not only the first, so a definition can
    be fixed in one pass.
    """

    code: int = 105

    def __init__(
        self,
        message: str,
        *,
        errors: list[ValidationError] | None = None,
        pipeline: str | None = None,
    ) -> None:
        self.errors = list(errors or [])
        self.pipeline = pipeline
        if self.errors:
            details = "; ".join(str(e) for e in self.errors)
            message = f"{message}: {details}"
        super().__init__(message)
