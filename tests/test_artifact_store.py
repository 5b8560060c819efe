"""Tests for the run-scoped artifact store."""

import threading

import pytest

from conveyor.artifacts.store import InMemoryArtifactStore
from conveyor.errors import ArtifactNotFoundError, DuplicateArtifactError, MissingArtifactError
from conveyor.error_codes import ErrorCode


class TestPutGet:
    def test_put_then_get(self, store: InMemoryArtifactStore) -> None:
        stored = store.put("run-a", "SourceOutput", "Source", b"payload")
        fetched = store.get("run-a", "SourceOutput")

        assert fetched == stored
        assert fetched.producing_stage == "Source"
        assert fetched.payload == b"payload"
        assert fetched.size == 7

    def test_version_is_content_hash(self, store: InMemoryArtifactStore) -> None:
        a = store.put("run-a", "SourceOutput", "Source", b"same")
        b = store.put("run-b", "SourceOutput", "Source", b"same")
        c = store.put("run-c", "SourceOutput", "Source", b"different")

        assert a.version == b.version
        assert a.version != c.version
        assert len(a.version) == 64

    def test_ref(self, store: InMemoryArtifactStore) -> None:
        artifact = store.put("run-a", "ViteBuildOutput", "ViteBuild", b"x")

        assert artifact.ref.run_id == "run-a"
        assert artifact.ref.name == "ViteBuildOutput"
        assert str(artifact.ref) == f"run-a/ViteBuildOutput@{artifact.version[:12]}"


class TestWriteOnce:
    def test_duplicate_put_rejected(self, store: InMemoryArtifactStore) -> None:
        store.put("run-a", "SourceOutput", "Source", b"first")

        with pytest.raises(DuplicateArtifactError) as exc_info:
            store.put("run-a", "SourceOutput", "Other", b"second")

        assert exc_info.value.error_code == ErrorCode.DUPLICATE_ARTIFACT
        assert "Source" in str(exc_info.value)
        # the first write is untouched
        assert store.get("run-a", "SourceOutput").payload == b"first"

    def test_same_name_in_different_runs_allowed(self, store: InMemoryArtifactStore) -> None:
        store.put("run-a", "SourceOutput", "Source", b"a")
        store.put("run-b", "SourceOutput", "Source", b"b")

        assert store.get("run-a", "SourceOutput").payload == b"a"
        assert store.get("run-b", "SourceOutput").payload == b"b"

    def test_concurrent_puts_one_winner(self, store: InMemoryArtifactStore) -> None:
        errors: list[Exception] = []

        def writer(i: int) -> None:
            try:
                store.put("run-a", "SourceOutput", f"stage-{i}", b"x")
            except DuplicateArtifactError as e:
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(errors) == 9
        assert store.names("run-a") == ["SourceOutput"]


class TestNotFoundAndIsolation:
    def test_get_unwritten_name(self, store: InMemoryArtifactStore) -> None:
        with pytest.raises(ArtifactNotFoundError) as exc_info:
            store.get("run-a", "SourceOutput")

        assert exc_info.value.name == "SourceOutput"
        assert exc_info.value.run_id == "run-a"
        assert exc_info.value.error_code == ErrorCode.MISSING_ARTIFACT

    def test_missing_alias(self) -> None:
        assert MissingArtifactError is ArtifactNotFoundError

    def test_runs_are_isolated(self, store: InMemoryArtifactStore) -> None:
        """Artifacts written by run A are invisible to run B."""
        store.put("run-a", "ViteBuildOutput", "ViteBuild", b"a")

        with pytest.raises(ArtifactNotFoundError):
            store.get("run-b", "ViteBuildOutput")
        assert not store.exists("run-b", "ViteBuildOutput")
        assert store.names("run-b") == []

    def test_scope(self, store: InMemoryArtifactStore) -> None:
        run_a = store.scope("run-a")
        run_a.put("SourceOutput", "Source", b"a")

        assert run_a.exists("SourceOutput")
        assert run_a.names() == ["SourceOutput"]
        assert not store.scope("run-b").exists("SourceOutput")

    def test_release(self, store: InMemoryArtifactStore) -> None:
        store.put("run-a", "SourceOutput", "Source", b"a")
        store.put("run-b", "SourceOutput", "Source", b"b")

        store.release("run-a")

        assert store.run_ids() == ["run-b"]
        with pytest.raises(ArtifactNotFoundError):
            store.get("run-a", "SourceOutput")
        # releasing twice is harmless
        store.release("run-a")

    def test_names_in_write_order(self, store: InMemoryArtifactStore) -> None:
        store.put("run-a", "SourceOutput", "Source", b"1")
        store.put("run-a", "ViteBuildOutput", "ViteBuild", b"2")

        assert store.names("run-a") == ["SourceOutput", "ViteBuildOutput"]
