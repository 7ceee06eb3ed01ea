"""Value types for the stream control plane.

GenerationParameters is the document PATCHed to a running stream. It is
frozen: the composer builds a fresh one per submission and the dispatch
client only ever reads it.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class MotionProfile(str, Enum):
    """Named sampler preset controlling step count and temporal smoothness."""

    SLOW = "slow"
    MEDIUM = "medium"
    FAST = "fast"


class ModeTag(str, Enum):
    """Performance mode the prompt is written for."""

    AMBIENT = "dj"
    VOCAL_FOCUS = "karaoke"
    STAGE_PERFORMANCE = "live"


class SessionStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    CREATING = "creating"
    LIVE = "live"
    DEGRADED = "degraded"


PLAYBACK_URL_TEMPLATE = "https://lvpr.tv/?v={playback_id}&embed=1&lowLatency=force"


class Session(BaseModel):
    """Remote handle for one live generative-video pipeline instance."""

    model_config = ConfigDict(frozen=True)

    id: str
    output_playback_id: str = ""
    whip_url: str = ""
    status: SessionStatus = SessionStatus.LIVE

    @property
    def playback_url(self) -> str:
        return PLAYBACK_URL_TEMPLATE.format(playback_id=self.output_playback_id)

    @classmethod
    def from_response(cls, data: dict[str, Any]) -> Session:
        """Build from a `POST /streams` response body."""
        return cls(
            id=str(data["id"]),
            output_playback_id=str(data.get("output_playback_id") or ""),
            whip_url=str(data.get("whip_url") or ""),
        )


class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(default=1280, gt=0)
    height: int = Field(default=720, gt=0)


class GenerationIntent(BaseModel):
    """What the performer asked for. Built per user action."""

    base_text: str
    mode_tag: ModeTag = ModeTag.AMBIENT
    motion_profile: MotionProfile = MotionProfile.MEDIUM
    style_reference_image: str | None = Field(
        default=None, description="Data URL or URL of a style reference image"
    )
    style_strength: float = Field(default=1.3, ge=0.0, le=2.0)
    enabled_layers: dict[str, bool] = Field(
        default_factory=dict,
        description="Per-layer on/off overrides by name; unnamed layers stay on",
    )


class SamplerSchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    num_inference_steps: int = Field(..., gt=0)
    t_index_list: tuple[int, ...]
    guidance_scale: float
    delta: float

    @model_validator(mode="after")
    def _check_time_indices(self) -> SamplerSchedule:
        previous = -1
        for index in self.t_index_list:
            if index <= previous:
                raise ValueError("t_index_list must be strictly increasing")
            if index >= self.num_inference_steps:
                raise ValueError(
                    f"t_index_list value {index} outside [0, {self.num_inference_steps})"
                )
            previous = index
        return self


class ConditioningLayer(BaseModel):
    """One ControlNet blended into the diffusion model."""

    model_config = ConfigDict(frozen=True)

    name: str
    model_id: str
    preprocessor: str
    conditioning_scale: float = Field(..., ge=0.0, le=1.0)
    control_guidance_start: float = Field(default=0.0, ge=0.0, le=1.0)
    control_guidance_end: float = Field(default=1.0, ge=0.0, le=1.0)
    enabled: bool = True

    @model_validator(mode="after")
    def _check_range(self) -> ConditioningLayer:
        if self.control_guidance_start > self.control_guidance_end:
            raise ValueError("control_guidance_start must not exceed control_guidance_end")
        return self

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump()


class StyleAdapter(BaseModel):
    """IP-Adapter settings. Present but disabled when there is no reference."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    scale: float = Field(default=1.3, ge=0.0, le=2.0)
    reference_image: str | None = None
    type: str = "regular"
    weight_type: str = "linear"

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "enabled": self.enabled,
            "scale": self.scale,
            "weight_type": self.weight_type,
        }


class GenerationParameters(BaseModel):
    """Full parameter document for one stream update."""

    model_config = ConfigDict(frozen=True)

    model_id: str
    prompt: str
    negative_prompt: str = ""
    dimensions: Dimensions = Field(default_factory=Dimensions)
    seed: int = Field(..., ge=0)
    sampler: SamplerSchedule
    controlnets: tuple[ConditioningLayer, ...] = ()
    style_adapter: StyleAdapter = Field(default_factory=StyleAdapter)

    def to_payload(self) -> dict[str, Any]:
        """Flatten to the wire format expected by `PATCH /streams/{id}`."""
        payload: dict[str, Any] = {
            "model_id": self.model_id,
            "prompt": self.prompt,
            "negative_prompt": self.negative_prompt,
            "width": self.dimensions.width,
            "height": self.dimensions.height,
            "seed": self.seed,
            "num_inference_steps": self.sampler.num_inference_steps,
            "t_index_list": list(self.sampler.t_index_list),
            "guidance_scale": self.sampler.guidance_scale,
            "delta": self.sampler.delta,
            "controlnets": [layer.to_payload() for layer in self.controlnets],
            "ip_adapter": self.style_adapter.to_payload(),
        }
        if self.style_adapter.enabled and self.style_adapter.reference_image:
            payload["ip_adapter_style_image_url"] = self.style_adapter.reference_image
        return payload


class StyleUpdate(BaseModel):
    """Partial update that only retargets the style adapter of a running stream."""

    model_config = ConfigDict(frozen=True)

    scale: float = Field(default=1.0, ge=0.0, le=2.0)
    style_image_urls: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "ip_adapter": {"enabled": True, "scale": self.scale},
            "ip_adapter_style_image_urls": list(self.style_image_urls),
        }


class ArtistQuestionnaire(BaseModel):
    """Visual intake form for a new artist, fed to preset generation."""

    color_palette: str = ""
    cultural_refs: str = ""
    emotion: str = ""
    texture: str = ""
    season: str = ""
    visual_type: str = ""
    references: str = ""

    def answers(self) -> dict[str, str]:
        """Non-empty answers keyed by field name."""
        return {k: v for k, v in self.model_dump().items() if v.strip()}
