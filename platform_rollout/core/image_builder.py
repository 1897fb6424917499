"""
Image Builder - container image builds for platform services.

Provides:
- The ImageBuilder contract used by the build workflow and deployers
- A container-CLI backed implementation (docker or podman)
- `require_image` for deployers that must fail fast on missing images
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

from .errors import ImageNotFoundError
from .executor import CommandExecutor
from .logger import get_logger
from ..config import get_config, ImageBuildConfig


@runtime_checkable
class ImageBuilder(Protocol):
    """Builds and verifies container images. Build methods return the image reference."""

    async def build_service_image(self, service_name: str, category: str) -> str:
        ...

    async def build_gateway_image(self, name: str) -> str:
        ...

    async def build_website_image(self) -> str:
        ...

    async def image_exists(self, image_ref: str) -> bool:
        ...


class ImageBuildError(RuntimeError):
    """A single image build command failed."""
    pass


class ContainerImageBuilder:
    """
    ImageBuilder backed by a container CLI.

    Source layout under `source_dir`:
        services/<category>/<service>/Dockerfile
        gateways/<name>/Dockerfile
        website/Dockerfile

    Usage:
        builder = ContainerImageBuilder()
        ref = await builder.build_gateway_image("admin")
        assert await builder.image_exists(ref)
    """

    def __init__(
        self,
        config: ImageBuildConfig = None,
        executor: CommandExecutor = None,
    ):
        self.config = config or get_config().images
        self.source_dir = Path(self.config.source_dir)
        self.executor = executor or CommandExecutor(working_dir=self.source_dir)
        self.logger = get_logger("ContainerImageBuilder")

    def image_ref(self, image_name: str) -> str:
        """Qualify an image name with the configured registry and tag."""
        ref = image_name if ":" in image_name else f"{image_name}:{self.config.image_tag}"
        if self.config.registry_url:
            return f"{self.config.registry_url.rstrip('/')}/{ref}"
        return ref

    async def build_service_image(self, service_name: str, category: str) -> str:
        context = self.source_dir / "services" / category / service_name
        ref = self.image_ref(f"backend/{service_name}")
        await self._build(ref, context, labels={"service": service_name, "category": category})
        return ref

    async def build_gateway_image(self, name: str) -> str:
        context = self.source_dir / "gateways" / name
        ref = self.image_ref(f"backend/{name}-gateway")
        await self._build(ref, context, labels={"service": f"{name}-gateway", "category": "gateway"})
        return ref

    async def build_website_image(self) -> str:
        context = self.source_dir / "website"
        ref = self.image_ref("website")
        await self._build(ref, context, labels={"service": "website", "category": "website"})
        return ref

    async def image_exists(self, image_ref: str) -> bool:
        result = await self.executor.run(
            [self.config.container_cli, "image", "inspect", image_ref],
            timeout=30,
        )
        return result.success

    async def _build(self, ref: str, context: Path, labels: dict = None) -> None:
        argv = [
            self.config.container_cli, "build",
            "-t", ref,
            "-f", str(context / "Dockerfile"),
        ]
        if self.config.platform:
            argv += ["--platform", self.config.platform]
        for key, value in (labels or {}).items():
            argv += ["--label", f"{key}={value}"]
        argv.append(str(context))

        self.logger.info(f"Building image: {ref}")
        result = await self.executor.run(argv, timeout=self.config.build_timeout_seconds)

        if not result.success:
            detail = result.stderr.strip().splitlines()[-1] if result.stderr.strip() else f"exit code {result.return_code}"
            raise ImageBuildError(f"build of {ref} failed: {detail}")

        self.logger.info(f"Built image {ref} in {result.duration_seconds:.1f}s")


async def require_image(builder: ImageBuilder, image_ref: str) -> str:
    """Return `image_ref` if it exists, otherwise raise ImageNotFoundError."""
    if not await builder.image_exists(image_ref):
        raise ImageNotFoundError(image_ref)
    return image_ref
