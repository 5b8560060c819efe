"""Tests for loading pipeline definitions from YAML files."""

from pathlib import Path

import pytest

from conveyor.definition.loader import definition_from_dict, load_definition, substitute
from conveyor.errors import ConfigurationError, PipelineDefinitionError

PIPELINE_YAML = """
name: web-app
ref_pattern: refs/tags/v*
distribution_id: ${CONVEYOR_DISTRIBUTION_ID}
stages:
  - name: Source
    program: git checkout "$CONVEYOR_REVISION"
    output: SourceOutput
  - name: DockerBuild
    input: SourceOutput
    watch: [package.json, package-lock.json]
    program: docker build -t ${CONVEYOR_IMAGE} .
    exclusive_resource: ${CONVEYOR_IMAGE}
  - name: ViteBuild
    input: SourceOutput
    program: npm ci && npm run build
    timeout_seconds: 900
    env:
      NODE_ENV: production
      CI: true
    output:
      name: ViteBuildOutput
      base_directory: dist
      pattern: "**/*"
  - name: Deploy
    input: ViteBuildOutput
    program: aws s3 sync . s3://${CONVEYOR_DEPLOY_BUCKET} --delete
"""

VARIABLES = {
    "CONVEYOR_DISTRIBUTION_ID": "E2EXAMPLE",
    "CONVEYOR_IMAGE": "vite-node-build:latest",
    "CONVEYOR_DEPLOY_BUCKET": "site-bucket",
}


@pytest.fixture
def pipeline_file(tmp_path: Path) -> Path:
    path = tmp_path / "pipeline.yaml"
    path.write_text(PIPELINE_YAML)
    return path


class TestLoadDefinition:
    def test_load(self, pipeline_file: Path) -> None:
        definition = load_definition(pipeline_file, VARIABLES)

        assert definition.name == "web-app"
        assert definition.ref_pattern == "refs/tags/v*"
        assert definition.distribution_id == "E2EXAMPLE"
        assert definition.deploy_artifact == "ViteBuildOutput"
        assert [s.name for s in definition.stages] == ["Source", "DockerBuild", "ViteBuild", "Deploy"]

    def test_stage_fields(self, pipeline_file: Path) -> None:
        definition = load_definition(pipeline_file, VARIABLES)

        source = definition.stage("Source")
        assert source.output is not None
        assert source.output.name == "SourceOutput"
        assert source.output.base_directory == "."

        docker = definition.stage("DockerBuild")
        assert docker.skip_predicate is not None
        assert docker.skip_predicate.watch_paths == ("package.json", "package-lock.json")
        assert docker.program == "docker build -t vite-node-build:latest ."
        assert docker.exclusive_resource == "vite-node-build:latest"

        vite = definition.stage("ViteBuild")
        assert vite.timeout_seconds == 900.0
        assert vite.env == {"NODE_ENV": "production", "CI": "true"}
        assert vite.output is not None
        assert vite.output.base_directory == "dist"

    def test_shell_variables_untouched(self, pipeline_file: Path) -> None:
        definition = load_definition(pipeline_file, VARIABLES)
        assert definition.stage("Source").program == 'git checkout "$CONVEYOR_REVISION"'

    def test_undefined_variable(self, pipeline_file: Path) -> None:
        with pytest.raises(PipelineDefinitionError) as exc_info:
            load_definition(pipeline_file, {})

        assert any("undefined variable ${CONVEYOR_IMAGE}" in str(e) for e in exc_info.value.errors)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError):
            load_definition(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("name: [unclosed")
        with pytest.raises(ConfigurationError):
            load_definition(path)


class TestDefinitionFromDict:
    def test_shape_errors(self) -> None:
        with pytest.raises(PipelineDefinitionError) as exc_info:
            definition_from_dict({"name": "x", "stages": [{"name": "A", "program": "true", "bogus": 1}]})

        assert [e.path for e in exc_info.value.errors] == ["stages[0].bogus"]

    def test_output_object_validated(self) -> None:
        document = {"name": "x", "stages": [{"name": "A", "program": "true", "output": {"base_directory": "dist"}}]}
        with pytest.raises(PipelineDefinitionError) as exc_info:
            definition_from_dict(document)

        assert "stages[0].output.name" in [e.path for e in exc_info.value.errors]

    def test_semantic_errors_after_shape(self) -> None:
        document = {
            "name": "x",
            "stages": [
                {"name": "A", "program": "true", "output": "Out"},
                {"name": "B", "program": "true", "output": "Out"},
            ],
        }
        with pytest.raises(PipelineDefinitionError) as exc_info:
            definition_from_dict(document)

        assert exc_info.value.errors[0].constraint == "DuplicateArtifact"

    def test_not_a_mapping(self) -> None:
        with pytest.raises(PipelineDefinitionError):
            definition_from_dict(["not", "a", "pipeline"])


class TestSubstitute:
    def test_nested(self) -> None:
        value = {"a": ["${X}", {"b": "pre-${X}-post"}], "n": 3}
        assert substitute(value, {"X": "1"}) == {"a": ["1", {"b": "pre-1-post"}], "n": 3}

    def test_errors_collected(self) -> None:
        errors: list = []
        substitute({"a": "${MISSING}"}, {}, errors=errors)
        assert errors[0].path == "a"
