"""
Structured error codes for Conveyor.

Provides semantic error classification and exception chain traversal so
that a failed run can be diagnosed from its terminal status and the first
failing stage alone.

Usage:
    from conveyor.error_codes import ErrorCode, classify_error

    try:
        engine.run(trigger)
    except Exception as e:
        if classify_error(e) == ErrorCode.CONFIGURATION_INVALID:
            ...
"""

from __future__ import annotations

from enum import Enum


class ErrorCode(Enum):
    """Semantic error codes for categorizing exceptions.

    Each code maps to a specific category of failure that can be
    handled programmatically by callers (CLI exit codes, alerting).
    """

    # General errors
    UNKNOWN = "UNKNOWN"
    SYSTEM_ERROR = "SYSTEM_ERROR"

    # Configuration errors (reported before a run starts)
    CONFIGURATION_INVALID = "CONFIGURATION_INVALID"
    VALIDATION_FAILED = "VALIDATION_FAILED"

    # Artifact errors
    MISSING_ARTIFACT = "MISSING_ARTIFACT"
    DUPLICATE_ARTIFACT = "DUPLICATE_ARTIFACT"

    # Stage errors
    STAGE_FAILED = "STAGE_FAILED"
    STAGE_TIMEOUT = "STAGE_TIMEOUT"
    PROGRAM_LAUNCH_FAILED = "PROGRAM_LAUNCH_FAILED"

    # Change detection (recovered locally)
    CHANGE_DETECTION_UNAVAILABLE = "CHANGE_DETECTION_UNAVAILABLE"

    # Run errors
    TRIGGER_REJECTED = "TRIGGER_REJECTED"
    RUN_NOT_FOUND = "RUN_NOT_FOUND"
    INVALID_TRANSITION = "INVALID_TRANSITION"

    # Deploy collaborator
    INVALIDATION_FAILED = "INVALIDATION_FAILED"


def error_chain(error: Exception) -> list[Exception]:
    """Traverse __cause__ chain, return list from root to leaf.

    Args:
        error: The exception to traverse

    Returns:
        List of exceptions from root cause to the provided exception.
    """
    chain: list[Exception] = []
    current: Exception | None = error

    while current is not None:
        chain.append(current)
        cause = getattr(current, "__cause__", None)
        if cause is current:
            break
        current = cause

    chain.reverse()
    return chain


def classify_error(error: Exception) -> ErrorCode:
    """Map any exception to an ErrorCode.

    Conveyor exceptions carry an explicit ``error_code``; anything else is
    classified from its cause chain, then by type.

    Args:
        error: The exception to classify

    Returns:
        The most appropriate ErrorCode for the exception.
    """
    if hasattr(error, "error_code"):
        return error.error_code  # type: ignore[no-any-return]

    for exc in error_chain(error):
        if hasattr(exc, "error_code"):
            return exc.error_code  # type: ignore[no-any-return]

    if isinstance(error, TimeoutError):
        return ErrorCode.STAGE_TIMEOUT

    if isinstance(error, (FileNotFoundError, PermissionError)):
        return ErrorCode.PROGRAM_LAUNCH_FAILED

    error_type = type(error).__name__.lower()
    if any(pattern in error_type for pattern in ("validation", "invalid", "parse", "schema", "yaml")):
        return ErrorCode.VALIDATION_FAILED

    return ErrorCode.UNKNOWN
