"""
Drafting service - generative text and document analysis behind a small interface.
Structured answers are parsed defensively with clean_and_parse_json.
"""

import json
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List

import ollama

from util.logging import logger
from .config import DRAFTING_MODEL, DRAFTING_TEMPERATURE, DRAFTING_VISION_MODEL
from .errors import DraftingResponseError

_FENCE_PATTERN = re.compile(r"```(?:json)?")


def clean_and_parse_json(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object out of model output.

    Markdown code fences are dropped and the text is cut to the span between
    the first '{' and the last '}' before parsing.

    Raises:
        DraftingResponseError: if no JSON object can be recovered
    """
    if not isinstance(text, str):
        raise DraftingResponseError(f"Expected text from the drafting model, got {type(text).__name__}")

    cleaned = _FENCE_PATTERN.sub("", text)
    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        cleaned = cleaned[first_brace:last_brace + 1]

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error in drafting response: {e}")
        raise DraftingResponseError("Failed to parse structured data from the drafting model") from e

    if not isinstance(parsed, dict):
        raise DraftingResponseError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


class DraftingService(ABC):
    """
    Abstract drafting backend.
    Implementations supply generate() and analyze(); the JSON variants are shared.
    """

    @abstractmethod
    def generate(self, system_prompt: str, user_prompt: str) -> str:
        """
        Produce free text for a prompt.

        Args:
            system_prompt: Role and drafting instructions
            user_prompt: The filled-in request

        Returns:
            The model's text output
        """
        pass

    @abstractmethod
    def analyze(self, system_prompt: str, user_prompt: str, base64_data: str, mime_type: str) -> str:
        """Produce text about an attached document given as base64 data."""
        pass

    def generate_json(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return clean_and_parse_json(self.generate(system_prompt, user_prompt))

    def analyze_json(self, system_prompt: str, user_prompt: str, base64_data: str, mime_type: str) -> Dict[str, Any]:
        return clean_and_parse_json(self.analyze(system_prompt, user_prompt, base64_data, mime_type))


class OllamaDraftingService(DraftingService):
    """Drafting backed by local Ollama models; attachments go to the vision model."""

    def __init__(self, model_name: str = None, vision_model_name: str = None, temperature: float = None):
        self.model_name = model_name or DRAFTING_MODEL
        self.vision_model_name = vision_model_name or DRAFTING_VISION_MODEL
        self.temperature = DRAFTING_TEMPERATURE if temperature is None else temperature

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        messages = self._build_messages(system_prompt, user_prompt)
        return self._chat(self.model_name, messages)

    def analyze(self, system_prompt: str, user_prompt: str, base64_data: str, mime_type: str) -> str:
        if not mime_type or not mime_type.startswith("image/"):
            raise ValueError(f"Unsupported attachment type for {self.vision_model_name}: {mime_type}")
        messages = self._build_messages(system_prompt, user_prompt)
        messages[-1]["images"] = [base64_data]
        return self._chat(self.vision_model_name, messages)

    def _build_messages(self, system_prompt: str, user_prompt: str) -> List[Dict[str, Any]]:
        messages = []
        if system_prompt:
            messages.append({'role': 'system', 'content': system_prompt})
        messages.append({'role': 'user', 'content': user_prompt})
        return messages

    def _chat(self, model: str, messages: List[Dict[str, Any]]) -> str:
        start_time = datetime.now()
        try:
            response = ollama.chat(
                model=model,
                messages=messages,
                options={'temperature': self.temperature}
            )
        except ollama.ResponseError as e:
            logger.log_operation("drafting.chat", "failed", {"model": model, "error": str(e)})
            raise

        processing_time = int((datetime.now() - start_time).total_seconds() * 1000)
        content = response['message']['content'] or ''
        logger.log_operation("drafting.chat", "success", {
            "model": model,
            "processing_time_ms": processing_time,
            "response_length": len(content)
        })
        return content

    def is_available(self) -> bool:
        """Check that Ollama answers and the text model is pulled."""
        try:
            models = ollama.list()
        except Exception as e:
            logger.warning(f"Ollama is not reachable: {e}")
            return False
        names = [model['model'] for model in models['models']]
        return self.model_name in names
