"""Session controller - owns the stream session and serializes updates.

The controller is the only writer of the SessionStore. Every public operation
runs under one in-flight guard: a call made while another is outstanding is
rejected with ControllerBusyError before touching the network.

Failure policy:
- Stream creation fails -> SessionCreateError, store left empty, no patch
- Patch/clear fails -> store cleared, one awaited recreation attempt, then
  DispatchError (the recreation's own failure is only logged)
- Anything else propagates unchanged

Presentation layers observe via add_listener(); they never drive state.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .augment import PromptAugmenter
from .composer import PromptBank, RandomSource, compose, load_prompt_bank
from .config import StreamConfig
from .dispatch import DispatchClient
from .errors import (
    ControllerBusyError,
    DispatchError,
    EmptyPromptError,
    NoActiveSessionError,
    ServiceError,
    SessionCreateError,
    SubmitError,
)
from .params import (
    Dimensions,
    GenerationIntent,
    GenerationParameters,
    MotionProfile,
    Session,
    SessionStatus,
    StyleUpdate,
)
from .session_store import SessionStore

logger = logging.getLogger(__name__)


class ControllerState(Enum):
    """State of the controller as seen by a caller."""

    IDLE = "idle"
    CREATING = "creating"
    SUBMITTING = "submitting"
    CLEARING = "clearing"


@dataclass(frozen=True)
class ControllerStatus:
    """Snapshot delivered to listeners after every transition."""

    state: ControllerState
    session: Session | None
    session_status: SessionStatus
    is_passthrough: bool
    last_error: str | None


@dataclass(frozen=True)
class SubmitResult:
    session: Session
    params: GenerationParameters


class SessionController:
    """Drives one stream: create, update, return to live, recover."""

    def __init__(
        self,
        client: DispatchClient,
        config: StreamConfig,
        *,
        store: SessionStore | None = None,
        augmenter: PromptAugmenter | None = None,
        random_source: RandomSource | None = None,
        prompt_bank: PromptBank | None = None,
    ):
        """Initialize the controller.

        Args:
            client: Dispatch client (DaydreamClient or a test double)
            config: Stream settings (pipeline, model, dimensions)
            store: Session store; a fresh one by default
            augmenter: Default prompt source applied before composition
            random_source: Randomness for the composer
            prompt_bank: Phrase banks; loaded from config.prompt_bank_path if unset
        """
        self.client = client
        self.config = config
        self.store = store or SessionStore()
        self.augmenter = augmenter
        self.random_source = random_source
        self.prompt_bank = prompt_bank or load_prompt_bank(config.prompt_bank_path)

        self.state = ControllerState.IDLE
        self.is_passthrough = True
        self.last_error: str | None = None

        self._lock = asyncio.Lock()
        self._listeners: list[Callable[[ControllerStatus], None]] = []

    # =========================================================================
    # Observation
    # =========================================================================

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @property
    def session(self) -> Session | None:
        return self.store.current()

    @property
    def dimensions(self) -> Dimensions:
        return Dimensions(width=self.config.width, height=self.config.height)

    def status(self) -> ControllerStatus:
        return ControllerStatus(
            state=self.state,
            session=self.store.current(),
            session_status=self.store.status,
            is_passthrough=self.is_passthrough,
            last_error=self.last_error,
        )

    def add_listener(self, callback: Callable[[ControllerStatus], None]) -> None:
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[ControllerStatus], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _set_state(self, state: ControllerState) -> None:
        self.state = state
        self._notify()

    def _notify(self) -> None:
        snapshot = self.status()
        for callback in self._listeners:
            try:
                callback(snapshot)
            except Exception as e:
                logger.error(f"Error in controller listener: {e}")

    def _claim(self) -> None:
        # No await between this check and lock acquisition, so it is atomic
        # on the event loop.
        if self._lock.locked():
            logger.warning("Rejected request: controller busy")
            raise ControllerBusyError()

    # =========================================================================
    # Operations
    # =========================================================================

    async def submit(
        self,
        intent: GenerationIntent,
        motion_profile: MotionProfile | None = None,
        *,
        augmenter: PromptAugmenter | None = None,
    ) -> SubmitResult:
        """Compose parameters for `intent` and apply them to the stream.

        Args:
            intent: What to show
            motion_profile: Overrides intent.motion_profile
            augmenter: Overrides the controller's default prompt source

        Returns:
            The session the parameters were applied to and the parameters

        Raises:
            EmptyPromptError: Base text is blank (nothing is sent)
            ControllerBusyError: Another operation is in flight
            AugmentationError: The prompt source failed
            SessionCreateError: No session and creation failed
            DispatchError: Patch failed; the session has been rotated
        """
        if not intent.base_text.strip():
            self._record_error(EmptyPromptError())
            raise EmptyPromptError()

        self._claim()
        async with self._lock:
            self._set_state(ControllerState.SUBMITTING)
            try:
                result = await self._submit(intent, motion_profile, augmenter)
            except SubmitError as e:
                self._record_error(e)
                raise
            finally:
                self._set_state(ControllerState.IDLE)
            return result

    async def _submit(
        self,
        intent: GenerationIntent,
        motion_profile: MotionProfile | None,
        augmenter: PromptAugmenter | None,
    ) -> SubmitResult:
        source = augmenter or self.augmenter
        if source is not None:
            base_text = await source.augment(intent.base_text)
            intent = intent.model_copy(update={"base_text": base_text})

        params = compose(
            intent,
            motion_profile,
            random_source=self.random_source,
            prompt_bank=self.prompt_bank,
            model_id=self.config.model_id,
            dimensions=self.dimensions,
        )

        session = await self._ensure_session()
        logger.info(f"Sending prompt to stream {session.id}: {params.prompt}")
        try:
            await self.client.patch_parameters(session, params)
        except ServiceError as e:
            await self._rotate_session(e)
            raise DispatchError(e) from e

        self.is_passthrough = False
        self.last_error = None
        logger.info("Prompt applied successfully")
        return SubmitResult(session=session, params=params)

    async def return_to_live(self) -> None:
        """Clear generation parameters so the stream shows the raw input.

        Raises:
            NoActiveSessionError: No session exists (nothing is sent)
            ControllerBusyError: Another operation is in flight
            DispatchError: Clear failed; the session has been rotated
        """
        self._claim()
        async with self._lock:
            session = self.store.current()
            if session is None:
                self._record_error(NoActiveSessionError())
                raise NoActiveSessionError()

            self._set_state(ControllerState.CLEARING)
            try:
                await self.client.clear_parameters(session)
            except ServiceError as e:
                await self._rotate_session(e)
                error = DispatchError(e, "Failed to return to live mode")
                self._record_error(error)
                raise error from e
            finally:
                self._set_state(ControllerState.IDLE)

            self.is_passthrough = True
            self.last_error = None
            self._notify()

    async def apply_style(self, style_image_urls: list[str], scale: float = 1.0) -> None:
        """Retarget the style adapter of the running stream.

        Raises:
            NoActiveSessionError: No session exists (nothing is sent)
            ControllerBusyError: Another operation is in flight
            DispatchError: Patch failed; the session has been rotated
        """
        update = StyleUpdate(scale=scale, style_image_urls=tuple(style_image_urls))

        self._claim()
        async with self._lock:
            session = self.store.current()
            if session is None:
                self._record_error(NoActiveSessionError())
                raise NoActiveSessionError()

            self._set_state(ControllerState.SUBMITTING)
            try:
                await self.client.patch_parameters(session, update)
            except ServiceError as e:
                await self._rotate_session(e)
                error = DispatchError(e)
                self._record_error(error)
                raise error from e
            finally:
                self._set_state(ControllerState.IDLE)
            logger.info(f"Applied style with {len(style_image_urls)} image(s)")

    async def ensure_session(self) -> Session:
        """Create the stream now if there is none.

        Raises:
            ControllerBusyError: Another operation is in flight
            SessionCreateError: Creation failed
        """
        self._claim()
        async with self._lock:
            try:
                return await self._ensure_session()
            except SessionCreateError as e:
                self._record_error(e)
                raise
            finally:
                self._set_state(ControllerState.IDLE)

    async def close(self) -> None:
        await self.client.close()

    # =========================================================================
    # Session lifecycle
    # =========================================================================

    async def _ensure_session(self) -> Session:
        session = self.store.current()
        if session is not None:
            return session

        previous_state = self.state
        self.store.begin_create()
        self._set_state(ControllerState.CREATING)
        try:
            created = await self.client.create_session(
                self.config.pipeline_id, self.dimensions
            )
        except ServiceError as e:
            logger.error(f"Stream creation failed: {e}")
            self.store.clear()
            self._set_state(previous_state)
            raise SessionCreateError(e) from e
        except BaseException:
            self.store.clear()
            self._set_state(previous_state)
            raise

        self.store.set(created)
        self._set_state(previous_state)
        return self.store.current()

    async def _rotate_session(self, cause: ServiceError) -> None:
        """Discard the current session and try once to create a replacement."""
        logger.warning(f"Dispatch failed ({cause}); recreating stream")
        self.store.clear()
        self._notify()
        try:
            await self._ensure_session()
        except SessionCreateError as e:
            logger.warning(f"Stream recreation failed, will retry on next submit: {e}")

    def _record_error(self, error: SubmitError) -> None:
        self.last_error = str(error)
        self._notify()
