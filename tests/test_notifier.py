"""Tests for the deploy/invalidate collaborators."""

import pytest

from conveyor.deploy.notifier import CommandInvalidationNotifier, RecordingNotifier
from conveyor.errors import InvalidationError
from conveyor.models.artifact import ArtifactRef

REF = ArtifactRef(run_id="01RUN", name="ViteBuildOutput", version="f" * 64)


class TestRecordingNotifier:
    def test_records_calls(self) -> None:
        notifier = RecordingNotifier()

        assert notifier.notify_deploy_succeeded(REF, "E2EXAMPLE") == "inv-1"
        assert notifier.notify_deploy_succeeded(REF) == "inv-2"
        assert notifier.call_count == 2
        assert notifier.calls[0].artifact_ref == REF
        assert notifier.calls[0].distribution_id == "E2EXAMPLE"

    def test_failure(self) -> None:
        notifier = RecordingNotifier(fail_with="throttled")

        with pytest.raises(InvalidationError, match="throttled"):
            notifier.notify_deploy_succeeded(REF)
        assert notifier.call_count == 1


class TestCommandInvalidationNotifier:
    def test_placeholders_and_request_id(self) -> None:
        notifier = CommandInvalidationNotifier("echo {distribution_id}-{artifact}-{run_id}-{version}")

        request_id = notifier.notify_deploy_succeeded(REF, "E2EXAMPLE")

        assert request_id == f"E2EXAMPLE-ViteBuildOutput-01RUN-{'f' * 64}"

    def test_non_zero_exit(self) -> None:
        notifier = CommandInvalidationNotifier("echo denied >&2; exit 254")

        with pytest.raises(InvalidationError) as exc_info:
            notifier.notify_deploy_succeeded(REF, "E2EXAMPLE")
        assert "denied" in str(exc_info.value)

    def test_empty_output(self) -> None:
        with pytest.raises(InvalidationError):
            CommandInvalidationNotifier("true").notify_deploy_succeeded(REF)

    def test_timeout(self) -> None:
        with pytest.raises(InvalidationError):
            CommandInvalidationNotifier("sleep 5", timeout=0.2).notify_deploy_succeeded(REF)
