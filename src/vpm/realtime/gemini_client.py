"""
Gemini integration for prompt sourcing.

Provides:
- GeminiSceneWriter: song or artist name -> one cinematic scene prompt
  (usable as a CallableAugmenter function)
- GeminiPresetGenerator: artist questionnaire -> list of preset prompts

Both are optional collaborators. The controller only sees the text they return.
"""

from __future__ import annotations

import json
import logging
import threading
import time

from .config import DEFAULT_GEMINI_MODEL
from .params import ArtistQuestionnaire
from .presets import FALLBACK_PRESETS

logger = logging.getLogger(__name__)

DEFAULT_SCENE_FALLBACK = "Energetic live performance, cinematic, 4k"

# Rate limiting
_last_call_time = 0.0
_min_call_interval = 0.1  # 10 calls/sec max
_rate_limit_lock = threading.Lock()


def _rate_limit():
    """Simple rate limiter to avoid hitting API limits."""
    global _last_call_time
    with _rate_limit_lock:
        now = time.time()
        elapsed = now - _last_call_time
        if elapsed < _min_call_interval:
            time.sleep(_min_call_interval - elapsed)
        _last_call_time = time.time()


def init_client(api_key: str | None):
    """
    Initialize the Gemini client.

    Args:
        api_key: Gemini API key (StreamConfig.gemini_api_key)

    Returns:
        google.genai.Client or None if no API key available
    """
    if not api_key:
        logger.warning("No Gemini API key configured - Gemini features unavailable")
        return None

    from google import genai

    return genai.Client(api_key=api_key)


def parse_preset_lines(text: str) -> list[str]:
    """Parse model output into preset prompts.

    Accepts a JSON array of strings; otherwise falls back to one prompt per
    non-empty line with leading "-" bullets stripped.
    """
    text = text.strip()
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return [
            line.strip().lstrip("-").strip()
            for line in text.split("\n")
            if line.strip().lstrip("-").strip()
        ]
    if isinstance(parsed, list):
        return [str(item).strip() for item in parsed if str(item).strip()]
    return []


class _GeminiBase:
    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_GEMINI_MODEL,
        temperature: float = 0.8,
        client=None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self._client = client

    @property
    def client(self):
        """Lazy-initialize client on first use."""
        if self._client is None:
            self._client = init_client(self.api_key)
        return self._client

    def _generate(self, prompt: str, max_output_tokens: int) -> str:
        if self.client is None:
            raise RuntimeError("Gemini client not available - check GEMINI_API_KEY")

        _rate_limit()

        from google.genai import types

        response = self.client.models.generate_content(
            model=self.model,
            contents=[prompt],
            config=types.GenerateContentConfig(
                temperature=self.temperature,
                max_output_tokens=max_output_tokens,
            ),
        )
        return (response.text or "").strip()


class GeminiSceneWriter(_GeminiBase):
    """
    Writes one scene prompt for a song or artist name.

    Implements the augmenter signature: (text) -> str
    """

    PROMPT_TEMPLATE = """Create one short visual scene prompt for a Stable Diffusion video performance
based on the song or artist name below.
It should feel cinematic and match the mood of the music.

Song or artist: "{text}"

Format the response as one descriptive line, e.g.:
"Dynamic concert scene with neon lights and smoke, cinematic, 4k\""""

    def __call__(self, text: str) -> str:
        """
        Generate a scene line.

        Returns:
            The scene prompt, or DEFAULT_SCENE_FALLBACK if the model returned nothing

        Raises:
            RuntimeError: If no client is available
        """
        try:
            result = self._generate(self.PROMPT_TEMPLATE.format(text=text), 128)
        except Exception as e:
            logger.error(f"Gemini song-to-visual failed: {e}")
            raise
        line = result.split("\n")[0].strip().strip('"').strip()
        return line or DEFAULT_SCENE_FALLBACK


class GeminiPresetGenerator(_GeminiBase):
    """Generates custom preset prompts from an artist questionnaire."""

    PROMPT_TEMPLATE = """You are a visual creative assistant for live music visuals.
Given the following artist questionnaire answers, generate 4-6 short cinematic scene prompts
inspired by their mood and aesthetic. Each should be a single descriptive phrase
formatted for a Stable Diffusion / Stream Diffusion model.

Artist Answers:
{answers}

The final prompt for each should sound like:
"An award-winning visual - [answers blended], cinematic, 4k, dynamic lighting, vivid color contrast."
Return only a JSON array of strings."""

    def generate(self, questionnaire: ArtistQuestionnaire) -> list[str]:
        """
        Generate preset prompts.

        Never raises: if Gemini is unavailable, fails, or returns nothing
        usable, the fixed fallback presets are returned instead.
        """
        prompt = self.PROMPT_TEMPLATE.format(
            answers=json.dumps(questionnaire.answers(), indent=2)
        )
        try:
            presets = parse_preset_lines(self._generate(prompt, 1024))
        except Exception as e:
            logger.error(f"Gemini preset generation failed: {e}")
            return list(FALLBACK_PRESETS)

        if not presets:
            logger.warning("Gemini returned no presets, using fallback presets")
            return list(FALLBACK_PRESETS)
        logger.info(f"Generated {len(presets)} presets")
        return presets
