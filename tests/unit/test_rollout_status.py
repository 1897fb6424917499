"""Unit tests for RolloutStatus."""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx


def _client(post):
    client = MagicMock()
    client.post = post
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=False)
    return client


class TestRolloutStatus:
    """Tests for rollout event recording and webhooks."""

    @pytest.mark.asyncio
    async def test_events_recorded_in_order(self):
        from platform_rollout.core.rollout_status import RolloutStatus, RolloutPhase

        status = RolloutStatus("deploy-123")

        await status.started("staging")
        await status.deploying("database")
        event = await status.succeeded()

        assert [e.phase for e in status.events] == [
            RolloutPhase.STARTED, RolloutPhase.DEPLOYING, RolloutPhase.SUCCEEDED,
        ]
        assert status.events[0].environment == "staging"
        assert status.events[1].component == "database"
        assert event.phase.is_terminal
        assert status.finished

    @pytest.mark.asyncio
    async def test_not_finished_mid_rollout(self):
        from platform_rollout.core.rollout_status import RolloutStatus, RolloutPhase

        status = RolloutStatus("deploy-123")
        assert status.phase is None

        await status.health_checking()

        assert status.phase is RolloutPhase.HEALTH_CHECKING
        assert not status.finished

    @pytest.mark.asyncio
    async def test_failed_event_carries_error(self):
        from platform_rollout.core.rollout_status import RolloutStatus

        status = RolloutStatus("deploy-123")

        event = await status.failed("database deployment failed: timeout")

        assert event.error == "database deployment failed: timeout"
        assert event.to_dict()["phase"] == "failed"
        assert event.to_dict()["error"] == "database deployment failed: timeout"
        assert "component" not in event.to_dict()

    @pytest.mark.asyncio
    async def test_rollback_events(self):
        from platform_rollout.core.rollout_status import RolloutStatus

        status = RolloutStatus("deploy-123")

        rolling = await status.rolling_back("database: failed")
        done = await status.rolled_back(["website", "storage"])

        assert rolling.reason == "database: failed"
        assert done.failed_steps == ("website", "storage")
        assert done.message == "Rollback completed with 2 failed steps"
        assert done.to_dict()["failed_steps"] == ["website", "storage"]

    @pytest.mark.asyncio
    async def test_webhook_posted(self):
        from platform_rollout.core.rollout_status import RolloutStatus

        status = RolloutStatus("deploy-123", webhook_url="https://hooks.example.org/rollout")
        client = _client(AsyncMock(return_value=MagicMock(status_code=200)))

        with patch("platform_rollout.core.rollout_status.httpx.AsyncClient", return_value=client):
            await status.building_images("Gateway Services")

        client.post.assert_awaited_once()
        payload = client.post.await_args.kwargs["json"]
        assert payload["phase"] == "building_images"
        assert payload["group"] == "Gateway Services"
        assert payload["deployment_id"] == "deploy-123"

    @pytest.mark.asyncio
    async def test_webhook_errors_are_logged_not_raised(self):
        from platform_rollout.core.rollout_status import RolloutStatus

        status = RolloutStatus("deploy-123", webhook_url="https://hooks.example.org/rollout")
        client = _client(AsyncMock(side_effect=httpx.ConnectError("connection refused")))

        with patch("platform_rollout.core.rollout_status.httpx.AsyncClient", return_value=client):
            event = await status.deploying("website")

        assert event.component == "website"
        assert status.events == [event]

    @pytest.mark.asyncio
    async def test_no_webhook_without_url(self):
        from platform_rollout.core.rollout_status import RolloutStatus

        status = RolloutStatus("deploy-123")

        with patch("platform_rollout.core.rollout_status.httpx.AsyncClient") as client_cls:
            await status.validating()

        client_cls.assert_not_called()
