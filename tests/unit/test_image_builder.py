"""Unit tests for the container image builder."""

from pathlib import Path

import pytest
from unittest.mock import AsyncMock, MagicMock


def _result(success: bool = True, stderr: str = ""):
    from platform_rollout.core.executor import CommandResult

    return CommandResult(
        command="docker build",
        return_code=0 if success else 1,
        stdout="",
        stderr=stderr,
        success=success,
        duration_seconds=1.5,
    )


def _builder(**config_overrides):
    from platform_rollout.config import ImageBuildConfig
    from platform_rollout.core.image_builder import ContainerImageBuilder

    options = {
        "container_cli": "docker",
        "registry_url": "",
        "image_tag": "latest",
        "source_dir": Path("/srv/platform"),
        "build_timeout_seconds": 900,
        "platform": None,
    }
    options.update(config_overrides)
    executor = MagicMock()
    executor.run = AsyncMock(return_value=_result())
    return ContainerImageBuilder(ImageBuildConfig(**options), executor=executor), executor


class TestContainerImageBuilder:
    """Tests for image references and build commands."""

    def test_image_ref_with_registry(self):
        builder, _ = _builder(registry_url="registry.example.org/platform/", image_tag="v1.4.0")

        assert builder.image_ref("website") == "registry.example.org/platform/website:v1.4.0"
        assert builder.image_ref("website:pinned") == "registry.example.org/platform/website:pinned"

    @pytest.mark.asyncio
    async def test_build_service_image(self):
        builder, executor = _builder()

        ref = await builder.build_service_image("donations", "inquiries")

        assert ref == "backend/donations:latest"
        argv = executor.run.await_args.args[0]
        assert argv[:4] == ["docker", "build", "-t", "backend/donations:latest"]
        assert argv[argv.index("-f") + 1] == "/srv/platform/services/inquiries/donations/Dockerfile"
        assert argv[-1] == "/srv/platform/services/inquiries/donations"
        assert executor.run.await_args.kwargs["timeout"] == 900

    @pytest.mark.asyncio
    async def test_build_gateway_and_website(self):
        builder, executor = _builder(platform="linux/amd64")

        assert await builder.build_gateway_image("admin") == "backend/admin-gateway:latest"
        gateway_argv = executor.run.await_args.args[0]
        assert gateway_argv[-1] == "/srv/platform/gateways/admin"
        assert "--platform" in gateway_argv

        assert await builder.build_website_image() == "website:latest"
        assert executor.run.await_args.args[0][-1] == "/srv/platform/website"

    @pytest.mark.asyncio
    async def test_failed_build_raises(self):
        from platform_rollout.core.image_builder import ImageBuildError

        builder, executor = _builder()
        executor.run.return_value = _result(success=False, stderr="step 3/9\nERROR: failed to solve")

        with pytest.raises(ImageBuildError, match="ERROR: failed to solve"):
            await builder.build_gateway_image("public")

    @pytest.mark.asyncio
    async def test_image_exists(self):
        builder, executor = _builder()

        assert await builder.image_exists("website:latest") is True
        assert executor.run.await_args.args[0] == ["docker", "image", "inspect", "website:latest"]

        executor.run.return_value = _result(success=False)
        assert await builder.image_exists("website:latest") is False

    def test_satisfies_protocol(self):
        from platform_rollout.core.image_builder import ImageBuilder

        builder, _ = _builder()

        assert isinstance(builder, ImageBuilder)


class TestRequireImage:
    """Tests for the fail-fast image check used by deployers."""

    @pytest.mark.asyncio
    async def test_missing_image_raises(self):
        from platform_rollout.core.errors import ImageNotFoundError
        from platform_rollout.core.image_builder import require_image

        builder = MagicMock()
        builder.image_exists = AsyncMock(return_value=False)

        with pytest.raises(ImageNotFoundError, match="image not found: backend/news:latest"):
            await require_image(builder, "backend/news:latest")

    @pytest.mark.asyncio
    async def test_present_image_returned(self):
        from platform_rollout.core.image_builder import require_image

        builder = MagicMock()
        builder.image_exists = AsyncMock(return_value=True)

        assert await require_image(builder, "website:latest") == "website:latest"


class TestCommandExecutor:
    """Tests for the subprocess executor."""

    @pytest.mark.asyncio
    async def test_missing_binary_is_a_failed_result(self, tmp_path):
        from platform_rollout.core.executor import CommandExecutor

        executor = CommandExecutor(working_dir=tmp_path)

        result = await executor.run("definitely-not-a-real-binary-9f3a --version", timeout=5)

        assert result.success is False
        assert result.return_code == -1

    def test_split_string_and_argv(self):
        from platform_rollout.core.executor import CommandExecutor

        assert CommandExecutor._split("pulumi stack ls --non-interactive") == [
            "pulumi", "stack", "ls", "--non-interactive",
        ]
        assert CommandExecutor._split(["docker", Path("ctx")]) == ["docker", "ctx"]
