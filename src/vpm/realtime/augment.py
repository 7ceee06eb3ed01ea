"""
Prompt augmenters - pluggable sources of base text for the controller.

The controller calls `augment(base_text)` before composition. The local
style bank is always applied by the composer; an augmenter only replaces the
base text (for example with an LLM-written scene for a song name).
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable

from .errors import AugmentationError

logger = logging.getLogger(__name__)


class PromptAugmenter(ABC):
    """Turns user input into the base text handed to the composer."""

    name: str = "augmenter"

    @abstractmethod
    async def augment(self, base_text: str) -> str:
        """
        Produce base text for composition.

        Raises:
            AugmentationError: If the source failed
        """


class LocalAugmenter(PromptAugmenter):
    """Uses the user's text as-is; variety comes from the composer's banks."""

    name = "local"

    async def augment(self, base_text: str) -> str:
        return base_text


class CallableAugmenter(PromptAugmenter):
    """
    Wraps an opaque text -> text function (sync or async).

    Sync functions run in a worker thread so they do not block the loop.
    Empty results are replaced by `fallback_text`.
    """

    def __init__(
        self,
        fn: Callable[[str], str] | Callable[[str], Awaitable[str]],
        fallback_text: str = "",
        name: str = "callable",
    ):
        self.fn = fn
        self.fallback_text = fallback_text
        self.name = name

    async def augment(self, base_text: str) -> str:
        try:
            if inspect.iscoroutinefunction(self.fn) or inspect.iscoroutinefunction(
                getattr(self.fn, "__call__", None)
            ):
                result = self.fn(base_text)
            else:
                result = await asyncio.to_thread(self.fn, base_text)
            # Sync wrappers may still hand back an awaitable
            if inspect.isawaitable(result):
                result = await result
            if result is not None and not isinstance(result, str):
                raise TypeError(
                    f"expected str from augmenter, got {type(result).__name__}"
                )
        except Exception as e:
            logger.error(f"Prompt augmenter '{self.name}' failed: {e}")
            raise AugmentationError() from e

        text = (result or "").strip()
        if not text:
            logger.warning(
                f"Prompt augmenter '{self.name}' returned nothing, using fallback"
            )
            return self.fallback_text or base_text
        logger.info(f"Augmented prompt via {self.name}: {text[:80]}")
        return text


def create_augmenter(
    source: str = "local",
    gemini_api_key: str | None = None,
    gemini_model: str | None = None,
) -> PromptAugmenter:
    """
    Create an augmenter by name.

    Args:
        source: "local" or "gemini"
        gemini_api_key: Required for "gemini"
        gemini_model: Optional Gemini model override

    Raises:
        ValueError: Unknown source, or "gemini" without an API key
    """
    if source == "local":
        return LocalAugmenter()

    if source == "gemini":
        if not gemini_api_key:
            raise ValueError("Gemini augmentation requires GEMINI_API_KEY")
        from .gemini_client import DEFAULT_SCENE_FALLBACK, GeminiSceneWriter

        kwargs = {"model": gemini_model} if gemini_model else {}
        writer = GeminiSceneWriter(gemini_api_key, **kwargs)
        return CallableAugmenter(
            writer, fallback_text=DEFAULT_SCENE_FALLBACK, name="gemini"
        )

    raise ValueError(f"Unknown prompt source '{source}' (expected 'local' or 'gemini')")
