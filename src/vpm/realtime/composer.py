"""
Parameter composer - turns a GenerationIntent into GenerationParameters.

Composition is pure apart from three random draws (style phrase, performer
framing, seed). Those go through a RandomSource so tests can pin or inspect
each one independently.
"""

from __future__ import annotations

import base64
import logging
import mimetypes
import random
from pathlib import Path
from typing import Protocol, Sequence

import yaml
from pydantic import BaseModel, Field

from .config import DEFAULT_MODEL_ID
from .params import (
    Dimensions,
    GenerationIntent,
    GenerationParameters,
    ModeTag,
    MotionProfile,
    StyleAdapter,
)
from .presets import (
    DEFAULT_NEGATIVE_PROMPT,
    PERFORMER_FRAMING_BANK,
    STYLE_BANK,
    conditioning_layers,
    sampler_for,
)

logger = logging.getLogger(__name__)

MAX_SEED = 100_000
SHORT_PROMPT_WORDS = 2


class RandomSource(Protocol):
    """Randomness used by the composer."""

    def pick_style(self, bank: Sequence[str]) -> str: ...

    def pick_framing(self, bank: Sequence[str]) -> str: ...

    def next_seed(self) -> int: ...


class SystemRandomSource:
    """Uniform draws from a `random.Random` instance."""

    def __init__(self, seed: int | None = None):
        self._rng = random.Random(seed)

    def pick_style(self, bank: Sequence[str]) -> str:
        return self._rng.choice(bank)

    def pick_framing(self, bank: Sequence[str]) -> str:
        return self._rng.choice(bank)

    def next_seed(self) -> int:
        return self._rng.randrange(MAX_SEED)


class PromptBank(BaseModel):
    """Phrase banks used to decorate prompts. Loadable from YAML."""

    styles: list[str] = Field(default_factory=lambda: list(STYLE_BANK), min_length=1)
    framings: list[str] = Field(
        default_factory=lambda: list(PERFORMER_FRAMING_BANK), min_length=1
    )
    negative_prompt: str = DEFAULT_NEGATIVE_PROMPT

    @classmethod
    def from_yaml(cls, path: str | Path) -> PromptBank:
        """Load a bank from YAML; keys that are absent keep their defaults."""
        path = Path(path)
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        bank = cls.model_validate(data)
        logger.info(
            f"Loaded prompt bank from {path} "
            f"({len(bank.styles)} styles, {len(bank.framings)} framings)"
        )
        return bank


def load_prompt_bank(path: str | Path | None) -> PromptBank:
    if path is None:
        return PromptBank()
    return PromptBank.from_yaml(path)


_default_random = SystemRandomSource()


def normalize_base_text(base_text: str) -> str:
    """Turn short mood tags ("fire", "neon") into a scene description."""
    text = base_text.strip()
    if len(text.split()) <= SHORT_PROMPT_WORDS:
        return f"performer in {text}"
    return text


def build_prompt(
    base_text: str,
    mode: ModeTag,
    random_source: RandomSource,
    bank: PromptBank,
) -> str:
    """Build the decorated prompt: `a <scene> scene[, <framing>], <style>`."""
    style = random_source.pick_style(bank.styles)
    focus = ""
    if ModeTag(mode) == ModeTag.VOCAL_FOCUS:
        focus = f", {random_source.pick_framing(bank.framings)}"
    return f"a {normalize_base_text(base_text)} scene{focus}, {style}"


def compose(
    intent: GenerationIntent,
    motion_profile: MotionProfile | None = None,
    *,
    random_source: RandomSource | None = None,
    prompt_bank: PromptBank | None = None,
    model_id: str = DEFAULT_MODEL_ID,
    dimensions: Dimensions | None = None,
) -> GenerationParameters:
    """
    Compose a full parameter document for one submission.

    Args:
        intent: The user's creative intent
        motion_profile: Sampler preset; defaults to intent.motion_profile
        random_source: Source for the style/framing/seed draws
        prompt_bank: Phrase banks; defaults to the built-in ones
        model_id: Diffusion model to run
        dimensions: Output size; defaults to 1280x720

    Returns:
        A frozen GenerationParameters
    """
    rng = random_source or _default_random
    bank = prompt_bank or PromptBank()
    profile = MotionProfile(motion_profile or intent.motion_profile)

    if intent.style_reference_image:
        style_adapter = StyleAdapter(
            enabled=True,
            scale=intent.style_strength,
            reference_image=intent.style_reference_image,
        )
    else:
        style_adapter = StyleAdapter(enabled=False, scale=intent.style_strength)

    return GenerationParameters(
        model_id=model_id,
        prompt=build_prompt(intent.base_text, intent.mode_tag, rng, bank),
        negative_prompt=bank.negative_prompt,
        dimensions=dimensions or Dimensions(),
        seed=rng.next_seed(),
        sampler=sampler_for(profile),
        controlnets=conditioning_layers(profile, intent.enabled_layers),
        style_adapter=style_adapter,
    )


def load_style_reference(path: str | Path) -> str:
    """Read an image into memory and return it as a base64 data URL.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path).expanduser()
    data = path.read_bytes()
    mime, _ = mimetypes.guess_type(path.name)
    encoded = base64.b64encode(data).decode("ascii")
    logger.debug(f"Loaded style reference {path.name} ({len(data)} bytes)")
    return f"data:{mime or 'application/octet-stream'};base64,{encoded}"
