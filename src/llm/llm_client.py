import json
import logging
import os
from typing import Any, Optional

from llm.providers.base import LLMProvider
from taskagent.errors import RemoteCallFailed

logger = logging.getLogger(__name__)

LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))


def build_provider() -> LLMProvider:
    """Pick the provider from LLM_PROVIDER (defaults to openai when a key is present)."""
    name = os.getenv("LLM_PROVIDER", "").strip().lower()
    if not name:
        name = "openai" if os.getenv("OPENAI_API_KEY") else "mock"

    if name == "openai":
        from llm.providers.openai_provider import OpenAIProvider

        return OpenAIProvider()

    if name == "mock":
        from llm.providers.mock_provider import MockProvider

        logger.warning("Using MockProvider for LLM calls")
        return MockProvider()

    raise RuntimeError(f"Unknown LLM_PROVIDER: {name}")


def extract_json(text: str) -> Any:
    """Decode the JSON object in a model response.

    Models often wrap the object in prose or code fences, so on a direct decode
    failure the outermost ``{...}`` span is tried. Raises ValueError if nothing
    decodes.
    """
    text = (text or "").strip()
    if not text:
        raise ValueError("empty model output")

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("no JSON object found in model output")

    try:
        return json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        raise ValueError(f"invalid JSON in model output: {e}") from e


class LLMClient:
    """Thin wrapper around a provider that normalizes failures.

    Calls are blocking; async callers run them with ``asyncio.to_thread``.
    """

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider or build_provider()

    def complete(
        self,
        *,
        system: str,
        user: str,
        model: Optional[str] = None,
        temperature: float = LLM_TEMPERATURE,
        max_tokens: Optional[int] = None,
    ) -> str:
        kwargs = {"system": system, "user": user, "temperature": temperature}
        if model is not None:
            kwargs["model"] = model
        if max_tokens is not None:
            kwargs["max_tokens"] = max_tokens

        try:
            return self.provider.generate(**kwargs)
        except Exception as e:
            logger.error(f"LLM call failed: {e}")
            raise RemoteCallFailed("Language model call failed", str(e)) from e
