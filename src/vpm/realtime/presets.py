"""Literal preset tables for parameter composition.

Everything here is a direct lookup: motion presets are not interpolated and
the conditioning catalog order is the order layers are composited in.
"""

from __future__ import annotations

from dataclasses import dataclass

from .params import ConditioningLayer, ModeTag, MotionProfile, SamplerSchedule

# =============================================================================
# Motion presets
# =============================================================================

MOTION_PRESETS: dict[MotionProfile, SamplerSchedule] = {
    MotionProfile.SLOW: SamplerSchedule(
        num_inference_steps=35,
        t_index_list=(0, 11, 17),
        guidance_scale=0.8,
        delta=0.30,
    ),
    MotionProfile.MEDIUM: SamplerSchedule(
        num_inference_steps=45,
        t_index_list=(0, 8, 16),
        guidance_scale=0.9,
        delta=0.45,
    ),
    MotionProfile.FAST: SamplerSchedule(
        num_inference_steps=50,
        t_index_list=(0, 5, 10, 15),
        guidance_scale=1.1,
        delta=0.65,
    ),
}


def sampler_for(profile: MotionProfile) -> SamplerSchedule:
    return MOTION_PRESETS[MotionProfile(profile)]


# =============================================================================
# Conditioning catalog
# =============================================================================


@dataclass(frozen=True)
class ConditioningSpec:
    """Catalog entry for one ControlNet."""

    name: str
    model_id: str
    preprocessor: str
    default_scale: float
    fast_scale: float | None = None

    def scale_for(self, profile: MotionProfile) -> float:
        if profile == MotionProfile.FAST and self.fast_scale is not None:
            return self.fast_scale
        return self.default_scale


# Canonical order. The remote model composites layers additively in this order.
CONDITIONING_CATALOG: tuple[ConditioningSpec, ...] = (
    ConditioningSpec(
        name="pose",
        model_id="thibaud/controlnet-sd21-openpose-diffusers",
        preprocessor="pose_tensorrt",
        default_scale=0.8,
    ),
    ConditioningSpec(
        name="color",
        model_id="thibaud/controlnet-sd21-color-diffusers",
        preprocessor="passthrough",
        default_scale=0.7,
    ),
    ConditioningSpec(
        name="depth",
        model_id="thibaud/controlnet-sd21-depth-diffusers",
        preprocessor="depth_tensorrt",
        default_scale=0.5,
        fast_scale=0.8,
    ),
)

CANONICAL_LAYER_ORDER: tuple[str, ...] = tuple(s.name for s in CONDITIONING_CATALOG)


def conditioning_layers(
    profile: MotionProfile,
    enabled: dict[str, bool] | None = None,
) -> tuple[ConditioningLayer, ...]:
    """Build the full layer list in canonical order.

    Args:
        profile: Motion profile (depth scale depends on it)
        enabled: Optional per-layer enabled overrides; layers not named stay on

    Raises:
        ValueError: If an override names an unknown layer
    """
    enabled = enabled or {}
    unknown = set(enabled) - set(CANONICAL_LAYER_ORDER)
    if unknown:
        raise ValueError(f"Unknown conditioning layer(s): {', '.join(sorted(unknown))}")
    return tuple(
        ConditioningLayer(
            name=spec.name,
            model_id=spec.model_id,
            preprocessor=spec.preprocessor,
            conditioning_scale=spec.scale_for(profile),
            enabled=enabled.get(spec.name, True),
        )
        for spec in CONDITIONING_CATALOG
    )


# =============================================================================
# Prompt banks
# =============================================================================

DEFAULT_NEGATIVE_PROMPT = "blurry, low quality, flat, 2d"

STYLE_BANK: tuple[str, ...] = (
    "award-winning cinematic, 3D, vibrant monochromatic, crystallized, 4k",
    "80s VHS scene, analog scanlines, deep contrast, saturated blues, cinematic lighting",
    "digital painting, sharp lines, rich gradients, motion blur, glow highlights",
    "holographic lightscape, metallic, prismatic, surreal composition",
    "retro anime style, cel-shading, 90s vibes, deep shadows",
    "dreamy impressionist brushstrokes, warm colors, fluid texture",
)

PERFORMER_FRAMING_BANK: tuple[str, ...] = (
    "close-up on performer's face, clear lighting, detailed facial features",
    "medium shot of performer, waist-up, expressive movement, ambient lighting",
    "wide shot of stage with performer, dynamic composition, atmospheric haze",
    "over-the-shoulder shot from performer, crowd in background, dramatic backlight",
    "side profile of performer, soft rim light, shallow depth of field",
    "low-angle shot looking up at performer, spotlight overhead",
)

# Quick-pick tags shown per mode
MODE_TAGS: dict[ModeTag, tuple[str, ...]] = {
    ModeTag.AMBIENT: ("fire", "ocean", "neon", "forest", "sunset"),
    ModeTag.VOCAL_FOCUS: (
        "90s brit pop",
        "neon skater",
        "hip hop futuristic",
        "classic rock",
        "bubblegum pop",
        "disco fever",
        "grunge basement",
        "synthwave nostalgia",
        "afrofuturist vibes",
        "punk rebellion",
        "dream pop haze",
        "latin groove night",
        "jazz noir lounge",
        "country sunset drive",
        "electronic trance bloom",
    ),
    ModeTag.STAGE_PERFORMANCE: (
        "epic",
        "intimate",
        "city vibes",
        "lofi party",
        "surreal crowd",
        "dreamy concert",
    ),
}

ARTIST_PRESETS: dict[str, tuple[str, ...]] = {
    "fletch": (
        "Euphoric midsummer concert in hazy magenta and cyan light, 90s VHS texture, soft grain, nostalgic dream pop glow",
        "Emotional neon rooftop performance, pink-blue reflections on wet concrete, handheld film grain aesthetic",
        "Sunset drive with cyan haze and pink neon horizon, nostalgic coming-of-age tones, dreamy composition",
        "Surreal concert with floating lights, euphoric VHS flicker, grainy cinematic lighting",
        "Intimate crowd scene in turquoise fog, shimmering pink flares, soft lens effect, youthful emotion",
    ),
    "bradford": (
        "Raw indie rock performance under amber spotlights, grainy film look, vintage edge",
        "Basement stage with smoky haze, handheld cam energy, warm orange tones",
        "Spotlight-focused solo act with minimal backdrop, deep shadows and cinematic isolation",
        "Late-night rehearsal room vibe, moody blue lighting, intimate camera feel",
        "Electric city night performance, fast pans, red-orange glow reflecting wet streets",
    ),
    "cherry": (
        "Soft pink ocean horizon performance, ethereal lighting, pastel cyan waves",
        "Dreamlike synthwave club with glowing pink fog and glitter haze, VHS texture",
        "Floating silhouettes in watery reflections, emotional ambient color bleed",
        "Moonlit seashore with magenta shimmer, soft VHS bloom, gentle camera drift",
        "Sunset beach with cyan streaks, grainy analog vibe, introspective emotional tone",
    ),
}

# Used when questionnaire preset generation fails
FALLBACK_PRESETS: tuple[str, ...] = (
    "Dreamy concert in soft hues, cinematic 4k",
    "Golden haze live performance, surreal lighting",
    "Pastel neon crowd with VHS film grain aesthetic",
    "Euphoric youth montage in magenta glow",
    "Cyan mist performance under emotional backlight",
)


def tags_for_mode(mode: ModeTag | str) -> list[str]:
    return list(MODE_TAGS[ModeTag(mode)])


def list_artists() -> list[str]:
    return sorted(ARTIST_PRESETS)


def artist_presets(name: str) -> list[str]:
    """Return the fixed preset prompts for an artist.

    Raises:
        KeyError: If the artist has no presets
    """
    key = name.strip().lower()
    if key not in ARTIST_PRESETS:
        raise KeyError(f"No presets for artist '{name}'. Known: {list_artists()}")
    return list(ARTIST_PRESETS[key])
