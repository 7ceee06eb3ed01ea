"""Realtime control plane for a remote generative-video stream.

This module owns the stream session and everything sent to it, separating
control semantics from any presentation layer.

Key components:
- compose: Builds GenerationParameters from a GenerationIntent
- SessionStore: Current session identity and lifecycle status
- DaydreamClient: Create / patch / clear calls against the streams API
- SessionController: Serializes submissions and recovers from failures
"""

from vpm.realtime.augment import (
    CallableAugmenter,
    LocalAugmenter,
    PromptAugmenter,
    create_augmenter,
)
from vpm.realtime.composer import (
    PromptBank,
    RandomSource,
    SystemRandomSource,
    build_prompt,
    compose,
    load_prompt_bank,
    load_style_reference,
    normalize_base_text,
)
from vpm.realtime.config import StreamConfig
from vpm.realtime.controller import (
    ControllerState,
    ControllerStatus,
    SessionController,
    SubmitResult,
)
from vpm.realtime.dispatch import DaydreamClient, DispatchClient
from vpm.realtime.errors import (
    AugmentationError,
    ControllerBusyError,
    DispatchError,
    EmptyPromptError,
    MissingCredentialError,
    NoActiveSessionError,
    ServiceError,
    SessionCreateError,
    SubmitError,
    VPMError,
)
from vpm.realtime.params import (
    ArtistQuestionnaire,
    ConditioningLayer,
    Dimensions,
    GenerationIntent,
    GenerationParameters,
    ModeTag,
    MotionProfile,
    SamplerSchedule,
    Session,
    SessionStatus,
    StyleAdapter,
    StyleUpdate,
)
from vpm.realtime.presets import (
    CANONICAL_LAYER_ORDER,
    MOTION_PRESETS,
    artist_presets,
    list_artists,
    tags_for_mode,
)
from vpm.realtime.session_store import SessionStore

__all__ = [
    # augment
    "CallableAugmenter",
    "LocalAugmenter",
    "PromptAugmenter",
    "create_augmenter",
    # composer
    "PromptBank",
    "RandomSource",
    "SystemRandomSource",
    "build_prompt",
    "compose",
    "load_prompt_bank",
    "load_style_reference",
    "normalize_base_text",
    # config
    "StreamConfig",
    # controller
    "ControllerState",
    "ControllerStatus",
    "SessionController",
    "SubmitResult",
    # dispatch
    "DaydreamClient",
    "DispatchClient",
    # errors
    "AugmentationError",
    "ControllerBusyError",
    "DispatchError",
    "EmptyPromptError",
    "MissingCredentialError",
    "NoActiveSessionError",
    "ServiceError",
    "SessionCreateError",
    "SubmitError",
    "VPMError",
    # params
    "ArtistQuestionnaire",
    "ConditioningLayer",
    "Dimensions",
    "GenerationIntent",
    "GenerationParameters",
    "ModeTag",
    "MotionProfile",
    "SamplerSchedule",
    "Session",
    "SessionStatus",
    "StyleAdapter",
    "StyleUpdate",
    # presets
    "CANONICAL_LAYER_ORDER",
    "MOTION_PRESETS",
    "artist_presets",
    "list_artists",
    "tags_for_mode",
    # session_store
    "SessionStore",
]
