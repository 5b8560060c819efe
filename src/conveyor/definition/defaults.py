"""
The built-in web application pipeline.

Four stages, run in order for every accepted tag push:

    Source -> DockerBuild (conditional) -> ViteBuild -> Deploy

DockerBuild rebuilds and pushes the build image only when the dependency
manifests changed since the prior revision. ViteBuild produces the static
site inside that image, Deploy syncs it to the deploy bucket, and a successful run asks the
deploy collaborator to invalidate the content-delivery cache.
"""

from __future__ import annotations

from conveyor.definition.pipeline import DEFAULT_REF_PATTERN, PipelineDefinition
from conveyor.errors import ConfigurationError
from conveyor.models.stage import OutputSpec, SkipWhenUnchanged, Stage
from conveyor.settings import Settings

SOURCE_OUTPUT = "SourceOutput"
BUILD_OUTPUT = "ViteBuildOutput"

DEPENDENCY_MANIFESTS = ("package.json", "package-lock.json", "Dockerfile")

_FETCH_PROGRAM = (
    'git init -q . && git fetch -q --depth 2 "$REPOSITORY_URL" "$CONVEYOR_REVISION" && git checkout -q FETCH_HEAD'
)
_DOCKER_PROGRAM = 'docker build -t "$IMAGE" . && docker push "$IMAGE"'
# The site is built inside the image DockerBuild maintains
_VITE_PROGRAM = 'docker run --rm -v "$PWD":/app -w /app "$IMAGE" sh -c "npm ci && npm run build"'
_DEPLOY_PROGRAM = 'aws s3 sync . "s3://$DEPLOY_BUCKET" --delete'


def web_app_pipeline(settings: Settings, access_token: str | None = None) -> PipelineDefinition:
    """
    Build the default pipeline from settings.

    Args:
        settings: Runtime settings supplying every external identifier
        access_token: Resolved repository access secret, if the repository
            is private

    Raises:
        ConfigurationError: If no deploy bucket is configured
    """
    if not settings.deploy_bucket:
        raise ConfigurationError("CONVEYOR_DEPLOY_BUCKET is required for the web application pipeline")

    repository_url = settings.repository_url
    if access_token:
        repository_url = repository_url.replace("https://", f"https://x-access-token:{access_token}@", 1)

    return PipelineDefinition(
        name=f"{settings.repository_name}-pipeline",
        ref_pattern=DEFAULT_REF_PATTERN,
        deploy_artifact=BUILD_OUTPUT,
        distribution_id=settings.distribution_id,
        stages=[
            Stage(
                name="Source",
                program=_FETCH_PROGRAM,
                output=OutputSpec(SOURCE_OUTPUT),
                env={"REPOSITORY_URL": repository_url},
            ),
            Stage(
                name="DockerBuild",
                program=_DOCKER_PROGRAM,
                input=SOURCE_OUTPUT,
                skip_predicate=SkipWhenUnchanged(DEPENDENCY_MANIFESTS),
                env={"IMAGE": settings.image},
                exclusive_resource=settings.image,
            ),
            Stage(
                name="ViteBuild",
                program=_VITE_PROGRAM,
                input=SOURCE_OUTPUT,
                env={"IMAGE": settings.image},
                output=OutputSpec(BUILD_OUTPUT, base_directory="dist", pattern="**/*"),
            ),
            Stage(
                name="Deploy",
                program=_DEPLOY_PROGRAM,
                input=BUILD_OUTPUT,
                env={"DEPLOY_BUCKET": settings.deploy_bucket},
            ),
        ],
    )
