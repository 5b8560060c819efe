"""Tests for static validation of pipeline definitions."""

import pytest

from conveyor.definition.pipeline import DEFAULT_REF_PATTERN, PipelineDefinition
from conveyor.errors import ConfigurationError, PipelineDefinitionError
from conveyor.models.stage import OutputSpec, SkipWhenUnchanged, Stage


def _stages() -> list[Stage]:
    return [
        Stage(name="Source", program="true", output=OutputSpec("SourceOutput")),
        Stage(
            name="DockerBuild",
            program="true",
            input="SourceOutput",
            skip_predicate=SkipWhenUnchanged(("package.json",)),
        ),
        Stage(name="ViteBuild", program="true", input="SourceOutput", output=OutputSpec("ViteBuildOutput", "dist")),
        Stage(name="Deploy", program="true", input="ViteBuildOutput"),
    ]


def _errors(stages: list[Stage], **kwargs: object) -> list[str]:
    with pytest.raises(PipelineDefinitionError) as exc_info:
        PipelineDefinition("web-app", stages, **kwargs)  # type: ignore[arg-type]
    return [str(e) for e in exc_info.value.errors]


class TestValidDefinition:
    def test_ordinals_assigned(self) -> None:
        definition = PipelineDefinition("web-app", _stages())
        assert [s.ordinal for s in definition.stages] == [0, 1, 2, 3]
        assert [s.name for s in definition.stages] == ["Source", "DockerBuild", "ViteBuild", "Deploy"]

    def test_defaults(self) -> None:
        definition = PipelineDefinition("web-app", _stages())

        assert definition.ref_pattern == DEFAULT_REF_PATTERN
        assert definition.deploy_artifact == "ViteBuildOutput"
        assert definition.conditional_stage is not None
        assert definition.conditional_stage.name == "DockerBuild"

    def test_stage_lookup(self) -> None:
        definition = PipelineDefinition("web-app", _stages())
        assert definition.stage("Deploy").input == "ViteBuildOutput"
        with pytest.raises(KeyError):
            definition.stage("Missing")

    def test_accepts_tags_only(self) -> None:
        definition = PipelineDefinition("web-app", _stages())

        assert definition.accepts("refs/tags/v1.2.0")
        assert not definition.accepts("refs/heads/main")

    def test_custom_ref_pattern(self) -> None:
        definition = PipelineDefinition("web-app", _stages(), ref_pattern="refs/heads/*")
        assert definition.accepts("refs/heads/main")

    def test_to_dict(self) -> None:
        data = PipelineDefinition("web-app", _stages(), distribution_id="E1").to_dict()
        assert data["distribution_id"] == "E1"
        assert data["stages"][1]["skip_predicate"] == {"watch_paths": ["package.json"]}


class TestInvalidDefinition:
    """Every configuration-shape problem is reported at construction."""

    def test_is_configuration_error(self) -> None:
        with pytest.raises(ConfigurationError):
            PipelineDefinition("web-app", [])

    def test_empty(self) -> None:
        assert _errors([]) == ["stages: must contain at least one stage"]

    def test_duplicate_stage_names(self) -> None:
        stages = _stages()
        stages.append(Stage(name="Deploy", program="true"))
        assert any("duplicate stage name 'Deploy'" in e for e in _errors(stages))

    def test_duplicate_output(self) -> None:
        stages = _stages()
        stages.insert(1, Stage(name="Other", program="true", output=OutputSpec("SourceOutput")))

        with pytest.raises(PipelineDefinitionError) as exc_info:
            PipelineDefinition("web-app", stages)

        duplicates = [e for e in exc_info.value.errors if e.constraint == "DuplicateArtifact"]
        assert len(duplicates) == 1
        assert "already produced by stage 'Source'" in duplicates[0].message

    def test_dangling_input(self) -> None:
        stages = _stages()
        stages.append(Stage(name="Publish", program="true", input="Nothing"))
        assert any("input 'Nothing' is never produced" in e for e in _errors(stages))

    def test_input_produced_later(self) -> None:
        stages = _stages()
        stages[0], stages[2] = stages[2], stages[0]
        errors = _errors(stages)
        assert any("produced by a later stage" in e for e in errors)

    def test_two_conditional_stages(self) -> None:
        stages = _stages()
        stages.append(Stage(name="Again", program="true", skip_predicate=SkipWhenUnchanged(("x",))))
        assert any("only one conditional stage" in e for e in _errors(stages))

    def test_conditional_without_watched_paths(self) -> None:
        stages = _stages()
        stages[1] = Stage(name="DockerBuild", program="true", skip_predicate=SkipWhenUnchanged(()))
        assert any("watched path" in e for e in _errors(stages))

    def test_conditional_with_output(self) -> None:
        stages = _stages()
        stages[1] = Stage(
            name="DockerBuild",
            program="true",
            output=OutputSpec("Image"),
            skip_predicate=SkipWhenUnchanged(("package.json",)),
        )
        assert any("conditional stage cannot produce" in e for e in _errors(stages))

    def test_non_positive_timeout(self) -> None:
        stages = _stages()
        stages[0] = Stage(name="Source", program="true", output=OutputSpec("SourceOutput"), timeout_seconds=0)
        assert any("timeout_seconds: must be positive" in e for e in _errors(stages))

    def test_empty_program(self) -> None:
        stages = _stages()
        stages[3] = Stage(name="Deploy", program="  ", input="ViteBuildOutput")
        assert any("program: must not be empty" in e for e in _errors(stages))

    def test_unknown_deploy_artifact(self) -> None:
        assert any("deploy_artifact" in e for e in _errors(_stages(), deploy_artifact="Nope"))

    def test_all_errors_reported_together(self) -> None:
        stages = [
            Stage(name="A", program="", input="X"),
            Stage(name="A", program="true"),
        ]
        assert len(_errors(stages)) >= 3
