"""
Generative text service used by capabilities.

Capabilities enrich their heuristic analysis with model output when a model
is configured. ``TextGenerator`` wraps a Pydantic AI ``Agent`` and exposes a
single JSON-object oriented call; ``create_text_generator`` builds one from
the application settings.

Capabilities must keep working without a model: they check
``TextGenerator.available`` and treat every generation error as "no AI
insight" rather than as a capability failure, unless the capability cannot
produce anything meaningful on its own.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from pydantic_ai import Agent

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an expert SEO analyst. Answer with a single JSON object only, "
    "without any additional text."
)


class TextGenerator:
    """Thin wrapper around a Pydantic AI model returning JSON objects."""

    def __init__(self, model: Any | None = None) -> None:
        """
        Initialize the generator.

        Args:
            model: A Pydantic AI model instance or model name. ``None`` disables generation.
        """
        self._model = model

    @property
    def available(self) -> bool:
        return self._model is not None

    async def generate_json(
        self,
        prompt: str,
        default: Dict[str, Any],
        *,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> Dict[str, Any]:
        """Ask the model for a JSON object shaped like ``default``.

        Keys missing from the model answer are filled from ``default``.

        Raises:
            RuntimeError: If no model is configured.
        """
        if self._model is None:
            raise RuntimeError("text generator is not configured (set OPENAI_API_KEY)")

        agent = Agent(self._model, output_type=dict, system_prompt=system_prompt)
        shape = ", ".join(f'"{k}"' for k in default)
        res = await agent.run(f"{prompt}\n\nReturn a JSON object with the keys: {shape}.")
        output = res.output if isinstance(res.output, dict) else {}
        return {**default, **{k: v for k, v in output.items() if v is not None}}


def create_text_generator(api_key: Optional[str] = None, model_name: Optional[str] = None) -> TextGenerator:
    """Build a ``TextGenerator`` from explicit values or the application settings.

    Returns a disabled generator when no API key is configured.
    """
    if api_key is None or model_name is None:
        from seoaudit_ai.server.core.config import settings

        api_key = api_key or settings.openai.api_key
        model_name = model_name or settings.openai.model

    if not api_key:
        logger.info("No OPENAI_API_KEY configured, capabilities run without AI insights")
        return TextGenerator(model=None)

    from pydantic_ai import ModelSettings
    from pydantic_ai.models.openai import OpenAIResponsesModel
    from pydantic_ai.providers.openai import OpenAIProvider

    logger.debug(f"Creating OpenAI model: {model_name} with Pydantic AI")
    model = OpenAIResponsesModel(
        model_name,
        provider=OpenAIProvider(api_key=api_key),
        settings=ModelSettings(temperature=0.4, max_tokens=2000),
    )
    return TextGenerator(model=model)
