"""Tests for the session controller."""

import asyncio

import pytest

from vpm.realtime.augment import CallableAugmenter
from vpm.realtime.controller import ControllerState, SessionController
from vpm.realtime.errors import (
    AugmentationError,
    ControllerBusyError,
    DispatchError,
    EmptyPromptError,
    NoActiveSessionError,
    ServiceError,
    SessionCreateError,
)
from vpm.realtime.params import (
    GenerationIntent,
    ModeTag,
    MotionProfile,
    SessionStatus,
    StyleUpdate,
)


@pytest.fixture
def controller(fake_client, config, fixed_random):
    return SessionController(fake_client, config, random_source=fixed_random)


def intent(text="neon", **kwargs):
    return GenerationIntent(base_text=text, **kwargs)


class TestSubmit:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\t\n"])
    async def test_empty_prompt_makes_no_calls(self, controller, fake_client, text):
        with pytest.raises(EmptyPromptError):
            await controller.submit(intent(text))

        assert fake_client.network_calls == 0
        assert controller.last_error == EmptyPromptError.user_message

    @pytest.mark.asyncio
    async def test_first_submit_creates_then_patches(self, controller, fake_client):
        result = await controller.submit(intent("neon"), MotionProfile.FAST)

        fake_client.create_session.assert_awaited_once()
        fake_client.patch_parameters.assert_awaited_once()

        session, params = fake_client.patch_parameters.await_args.args
        assert session.id == "stream-1"
        assert "performer in neon" in params.prompt
        assert params.to_payload()["controlnets"][2]["conditioning_scale"] == 0.8
        assert result.session.id == "stream-1"
        assert controller.is_passthrough is False
        assert controller.state == ControllerState.IDLE

    @pytest.mark.asyncio
    async def test_create_uses_configured_pipeline_and_dimensions(
        self, controller, fake_client
    ):
        await controller.submit(intent())

        pipeline_id, dimensions = fake_client.create_session.await_args.args
        assert pipeline_id == "pip_SD-turbo"
        assert (dimensions.width, dimensions.height) == (1280, 720)

    @pytest.mark.asyncio
    async def test_second_submit_reuses_session(self, controller, fake_client):
        await controller.submit(intent("neon"))
        await controller.submit(intent("fire"))

        assert fake_client.create_session.await_count == 1
        assert fake_client.patch_parameters.await_count == 2

    @pytest.mark.asyncio
    async def test_create_failure_sends_no_patch(self, controller, fake_client):
        fake_client.create_session.side_effect = ServiceError(401, "Unauthorized")

        with pytest.raises(SessionCreateError) as exc_info:
            await controller.submit(intent())

        assert exc_info.value.service_error.status == 401
        fake_client.patch_parameters.assert_not_awaited()
        assert controller.session is None
        assert controller.store.status == SessionStatus.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_patch_failure_rotates_session(self, controller, fake_client):
        await controller.submit(intent("neon"))
        assert controller.session.id == "stream-1"

        observed = []
        original_create = fake_client.create_session.side_effect

        def record_then_create(*args):
            observed.append(controller.store.current())
            return original_create(*args)

        fake_client.create_session.side_effect = record_then_create
        fake_client.patch_parameters.side_effect = ServiceError(500, "pipeline crashed")

        with pytest.raises(DispatchError) as exc_info:
            await controller.submit(intent("fire"))

        # store was emptied before the replacement was requested
        assert observed == [None]
        assert fake_client.create_session.await_count == 2
        assert exc_info.value.service_error.status == 500
        assert controller.session.id == "stream-2"

    @pytest.mark.asyncio
    async def test_patch_failure_with_failed_recreate(self, controller, fake_client):
        await controller.submit(intent("neon"))
        fake_client.patch_parameters.side_effect = ServiceError(500, "boom")
        fake_client.create_session.side_effect = ServiceError(None, "timeout after 30.0s")

        with pytest.raises(DispatchError):
            await controller.submit(intent("fire"))

        assert controller.session is None
        assert controller.store.status == SessionStatus.UNINITIALIZED

    @pytest.mark.asyncio
    async def test_concurrent_submit_is_rejected(self, controller, fake_client):
        release = asyncio.Event()
        entered = asyncio.Event()

        async def slow_patch(session, params):
            entered.set()
            await release.wait()

        fake_client.patch_parameters.side_effect = slow_patch

        first = asyncio.create_task(controller.submit(intent("neon")))
        await entered.wait()
        assert controller.busy

        with pytest.raises(ControllerBusyError):
            await controller.submit(intent("fire"))

        release.set()
        await first

        assert fake_client.patch_parameters.await_count == 1
        assert fake_client.create_session.await_count == 1
        assert not controller.busy

    @pytest.mark.asyncio
    async def test_return_to_live_rejected_while_submitting(
        self, controller, fake_client
    ):
        release = asyncio.Event()
        entered = asyncio.Event()

        async def slow_patch(session, params):
            entered.set()
            await release.wait()

        fake_client.patch_parameters.side_effect = slow_patch

        first = asyncio.create_task(controller.submit(intent("neon")))
        await entered.wait()

        with pytest.raises(ControllerBusyError):
            await controller.return_to_live()

        release.set()
        await first
        fake_client.clear_parameters.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_vocal_focus_prompt_has_framing(self, controller, fake_client):
        result = await controller.submit(intent("fire", mode_tag=ModeTag.VOCAL_FOCUS))

        assert result.params.prompt.startswith("a performer in fire scene, ")
        assert controller.prompt_bank.framings[0] in result.params.prompt


class TestAugmentation:
    @pytest.mark.asyncio
    async def test_augmenter_replaces_base_text(self, config, fake_client, fixed_random):
        augmenter = CallableAugmenter(lambda text: f"Dreamy haze for {text}, cinematic")
        controller = SessionController(
            fake_client, config, augmenter=augmenter, random_source=fixed_random
        )

        result = await controller.submit(intent("Anti-Hero"))

        assert result.params.prompt.startswith("a Dreamy haze for Anti-Hero, cinematic scene")

    @pytest.mark.asyncio
    async def test_per_call_augmenter_overrides_default(self, controller):
        async def scene(text):
            return "rain soaked rooftop show"

        augmenter = CallableAugmenter(scene)

        result = await controller.submit(intent("Umbrella"), augmenter=augmenter)

        assert "rain soaked rooftop show" in result.params.prompt

    @pytest.mark.asyncio
    async def test_async_callable_object_augmenter(self, controller, fake_client):
        class SongScene:
            async def __call__(self, text):
                return "rain soaked rooftop show"

        result = await controller.submit(
            intent("Umbrella"), augmenter=CallableAugmenter(SongScene())
        )

        assert "rain soaked rooftop show" in result.params.prompt
        fake_client.patch_parameters.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_augmenter_failure_aborts_before_network(
        self, controller, fake_client
    ):
        def broken(text):
            raise RuntimeError("quota exceeded")

        with pytest.raises(AugmentationError):
            await controller.submit(intent("Umbrella"), augmenter=CallableAugmenter(broken))

        assert fake_client.network_calls == 0
        assert controller.last_error == AugmentationError.user_message
        assert not controller.busy


class TestReturnToLive:
    @pytest.mark.asyncio
    async def test_without_session_makes_no_calls(self, controller, fake_client):
        with pytest.raises(NoActiveSessionError):
            await controller.return_to_live()

        assert fake_client.network_calls == 0

    @pytest.mark.asyncio
    async def test_clears_parameters(self, controller, fake_client):
        await controller.submit(intent())
        assert controller.is_passthrough is False

        await controller.return_to_live()

        fake_client.clear_parameters.assert_awaited_once()
        (session,) = fake_client.clear_parameters.await_args.args
        assert session.id == "stream-1"
        assert controller.is_passthrough is True

    @pytest.mark.asyncio
    async def test_clear_failure_rotates_session(self, controller, fake_client):
        await controller.submit(intent())
        fake_client.clear_parameters.side_effect = ServiceError(502, "bad gateway")

        with pytest.raises(DispatchError, match="Failed to return to live mode"):
            await controller.return_to_live()

        assert fake_client.create_session.await_count == 2
        assert controller.session.id == "stream-2"


class TestApplyStyle:
    @pytest.mark.asyncio
    async def test_sends_style_update(self, controller, fake_client):
        await controller.ensure_session()

        await controller.apply_style(["https://img/1.png", "https://img/2.png"], 0.6)

        session, update = fake_client.patch_parameters.await_args.args
        assert session.id == "stream-1"
        assert isinstance(update, StyleUpdate)
        assert update.scale == 0.6
        assert update.style_image_urls == ("https://img/1.png", "https://img/2.png")

    @pytest.mark.asyncio
    async def test_without_session(self, controller, fake_client):
        with pytest.raises(NoActiveSessionError):
            await controller.apply_style(["https://img/1.png"])

        assert fake_client.network_calls == 0


class TestObservation:
    @pytest.mark.asyncio
    async def test_listener_sees_creating_then_idle(self, controller):
        states = []
        controller.add_listener(lambda status: states.append(status.state))

        await controller.submit(intent())

        assert ControllerState.SUBMITTING in states
        assert ControllerState.CREATING in states
        assert states[-1] == ControllerState.IDLE

    @pytest.mark.asyncio
    async def test_snapshots_after_create_are_consistent(self, controller):
        snapshots = []
        controller.add_listener(snapshots.append)

        await controller.ensure_session()

        creating = [s for s in snapshots if s.state == ControllerState.CREATING]
        after = snapshots[snapshots.index(creating[-1]) + 1 :]
        assert creating
        for snapshot in after:
            assert snapshot.session_status == SessionStatus.LIVE
            assert snapshot.session.id == "stream-1"

    @pytest.mark.asyncio
    async def test_cancelled_create_leaves_store_empty(self, controller, fake_client):
        fake_client.create_session.side_effect = asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await controller.ensure_session()

        assert controller.store.status == SessionStatus.UNINITIALIZED
        assert controller.state == ControllerState.IDLE

    @pytest.mark.asyncio
    async def test_listener_sees_error(self, controller, fake_client):
        snapshots = []
        controller.add_listener(snapshots.append)
        fake_client.create_session.side_effect = ServiceError(401, "Unauthorized")

        with pytest.raises(SessionCreateError):
            await controller.ensure_session()

        assert snapshots[-1].last_error.startswith(SessionCreateError.user_message)
        assert snapshots[-1].session is None

    @pytest.mark.asyncio
    async def test_broken_listener_is_ignored(self, controller):
        def broken(status):
            raise ValueError("ui crashed")

        controller.add_listener(broken)
        result = await controller.submit(intent())

        assert result.session.id == "stream-1"

    @pytest.mark.asyncio
    async def test_remove_listener(self, controller):
        seen = []
        controller.add_listener(seen.append)
        controller.remove_listener(seen.append)

        await controller.submit(intent())

        assert seen == []

    @pytest.mark.asyncio
    async def test_ensure_session_is_idempotent(self, controller, fake_client):
        first = await controller.ensure_session()
        second = await controller.ensure_session()

        assert first.id == second.id == "stream-1"
        assert fake_client.create_session.await_count == 1
        assert controller.is_passthrough is True

    @pytest.mark.asyncio
    async def test_close_closes_client(self, controller, fake_client):
        await controller.close()
        fake_client.close.assert_awaited_once()
