"""
Image Build Workflow - builds service images ahead of rollout.

Groups run strictly one after another. Within a group, up to `parallelism`
builds run at once; every build in the group is awaited before the group is
judged, and a failed group stops the workflow.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Callable, Dict, List, Optional

from .base_agent import BaseAgent
from ..config import Config
from ..core.rollout_status import RolloutStatus
from ..core.errors import ImageBuildFailure
from ..core.image_builder import ImageBuilder
from ..models.build import BuildResult, BuildSummary, ImageBuildGroup, ImageBuildTask, ServiceType


def create_build_groups() -> List[ImageBuildGroup]:
    """Default build plan: backend services, then gateways, then the website."""
    return [
        ImageBuildGroup(
            name="Foundation Services",
            parallelism=4,
            tasks=[
                ImageBuildTask("media", ServiceType.INQUIRIES, "backend/media:latest", priority=1),
                ImageBuildTask("donations", ServiceType.INQUIRIES, "backend/donations:latest", priority=1),
                ImageBuildTask("volunteers", ServiceType.INQUIRIES, "backend/volunteers:latest", priority=2),
                ImageBuildTask("business", ServiceType.INQUIRIES, "backend/business:latest", priority=2),
            ],
        ),
        ImageBuildGroup(
            name="Content Services",
            parallelism=4,
            tasks=[
                ImageBuildTask("research", ServiceType.CONTENT, "backend/research:latest", priority=1),
                ImageBuildTask("services", ServiceType.CONTENT, "backend/services:latest", priority=1),
                ImageBuildTask("events", ServiceType.CONTENT, "backend/events:latest", priority=2),
                ImageBuildTask("news", ServiceType.CONTENT, "backend/news:latest", priority=2),
            ],
        ),
        ImageBuildGroup(
            name="Gateway Services",
            parallelism=2,
            tasks=[
                ImageBuildTask("admin", ServiceType.GATEWAY, "backend/admin-gateway:latest", priority=1),
                ImageBuildTask("public", ServiceType.GATEWAY, "backend/public-gateway:latest", priority=1),
            ],
        ),
        ImageBuildGroup(
            name="Frontend",
            parallelism=1,
            tasks=[
                ImageBuildTask("website", ServiceType.WEBSITE, "website:latest", priority=1),
            ],
        ),
    ]


class ImageBuildWorkflow(BaseAgent):
    """
    Runs image build groups in order with bounded parallelism per group.

    Usage:
        workflow = ImageBuildWorkflow(builder)
        summary = await workflow.run()   # raises ImageBuildFailure on any failure
    """

    def __init__(
        self,
        builder: ImageBuilder,
        groups: List[ImageBuildGroup] = None,
        status: RolloutStatus = None,
        config: Config = None,
    ):
        super().__init__("ImageBuildWorkflow", config)
        self.builder = builder
        self.groups = groups if groups is not None else create_build_groups()
        self.status = status
        self.results: Dict[str, BuildResult] = {}
        self.summary: Optional[BuildSummary] = None

        self._dispatch: Dict[str, Callable[[ImageBuildTask], Awaitable[str]]] = {
            ServiceType.INQUIRIES: self._build_service,
            ServiceType.CONTENT: self._build_service,
            ServiceType.GATEWAY: self._build_gateway,
            ServiceType.WEBSITE: self._build_website,
        }

    async def run(self) -> BuildSummary:
        """
        Execute every group in order.

        Returns:
            BuildSummary of all builds.

        Raises:
            ImageBuildFailure: A group had failures. Later groups are not started.
        """
        started = self.clock()
        self.results = {}
        self.logger.info("Executing dependency-aware parallel image building", groups=len(self.groups))

        for index, group in enumerate(self.groups, start=1):
            self.log_step(f"Building group {index}: {group.name}", index)
            if self.status:
                await self.status.building_images(group.name)

            results = await self.execute_build_group(group)
            failed = [result.service_name for result in results if not result.success]

            if failed:
                self._summarize(started)
                self.log_error(f"Build group '{group.name}' failed: {', '.join(failed)}")
                raise ImageBuildFailure(
                    f"build group '{group.name}' failed: {len(failed)} of {len(results)} "
                    f"services failed to build: {', '.join(failed)}",
                    failed,
                )

            self.log_success(f"Group {index}: {group.name} completed")

        return self.validate_all_builds_successful(started)

    async def execute_build_group(self, group: ImageBuildGroup) -> List[BuildResult]:
        """Run a group's tasks, at most `parallelism` at a time, and collect every result."""
        self.logger.info(
            f"Executing build group '{group.name}' with parallelism {group.parallelism}",
            tasks=len(group.tasks),
        )
        semaphore = asyncio.Semaphore(group.parallelism)
        ordered = sorted(group.tasks, key=lambda task: task.priority)

        async def bounded(task: ImageBuildTask) -> BuildResult:
            async with semaphore:
                return await self.execute_build_task(task)

        results = await asyncio.gather(*(bounded(task) for task in ordered))

        for result in results:
            self.results[result.service_name] = result
        return list(results)

    async def execute_build_task(self, task: ImageBuildTask) -> BuildResult:
        """Build one image. Failures are recorded on the result, not raised."""
        result = BuildResult(service_name=task.service_name, image_name=task.image_name)
        started = self.clock()
        self.logger.info(f"Starting build for {task.service_name} ({task.service_type})")

        build = self._dispatch.get(task.service_type)
        if build is None:
            result.error = f"unknown service type: {task.service_type}"
        else:
            try:
                result.image_ref = await build(task)
                result.success = True
            except Exception as e:
                result.error = str(e) or type(e).__name__

        result.finished_at = datetime.now()
        result.duration_seconds = self.elapsed_since(started)

        if result.success:
            self.logger.info(f"Build completed for {task.service_name} in {result.duration_seconds:.1f}s")
        else:
            self.logger.error(f"Build failed for {task.service_name}: {result.error}")
        return result

    def validate_all_builds_successful(self, started: float = None) -> BuildSummary:
        """
        Final pass over all recorded builds.

        Raises:
            ImageBuildFailure: Listing every failed service.
        """
        summary = self._summarize(started)
        self.logger.info(
            f"Build workflow summary: {len(summary.results)} builds completed "
            f"in {summary.total_duration_seconds:.1f}s total"
        )

        failed = summary.failed_services
        if failed:
            raise ImageBuildFailure(
                f"build validation failed: {len(failed)} services failed to build: {', '.join(failed)}",
                failed,
            )

        self.log_success("All image builds validated successfully")
        return summary

    def _summarize(self, started: float = None) -> BuildSummary:
        self.summary = BuildSummary(
            results=dict(self.results),
            total_duration_seconds=sum(result.duration_seconds for result in self.results.values()),
            elapsed_seconds=self.elapsed_since(started) if started is not None else 0.0,
        )
        return self.summary

    async def _build_service(self, task: ImageBuildTask) -> str:
        return await self.builder.build_service_image(task.service_name, task.service_type)

    async def _build_gateway(self, task: ImageBuildTask) -> str:
        return await self.builder.build_gateway_image(task.service_name)

    async def _build_website(self, task: ImageBuildTask) -> str:
        return await self.builder.build_website_image()
