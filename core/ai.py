import google.generativeai as genai
import os
import logging
import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from core.exceptions import SummarizationError

logger = logging.getLogger(__name__)

FALLBACK_MODELS = [
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.0-flash",
    "gemini-2.0-flash-lite",
    "gemma-3-27b-it",
    "gemma-3-12b-it",
]

PROMPT = """Summarize the following news article into a concise news script.

Output JSON: {{"script": "the news script"}}

{content}
"""


@dataclass(frozen=True)
class Summary:
    script: str


class Summarizer(ABC):
    @abstractmethod
    async def summarize(self, text: str) -> Summary:
        """Turn article text into a news script. Raises SummarizationError on failure."""


def load_api_keys() -> List[str]:
    """GEMINI_API_KEY, then GEMINI_API_KEY_2 ... GEMINI_API_KEY_9."""
    keys = []
    for i in range(1, 10):
        key_name = "GEMINI_API_KEY" if i == 1 else f"GEMINI_API_KEY_{i}"
        api_key = os.getenv(key_name)
        if api_key:
            keys.append(api_key)
            logger.info(f"Loaded {key_name}")
    return keys


def parse_script(response_text: str) -> str:
    cleaned = response_text.strip().replace("```json", "").replace("```", "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        # Some models ignore the JSON instruction; the raw text is still a script
        return cleaned
    if isinstance(data, dict):
        return str(data.get("script", "")).strip()
    return cleaned


class GeminiSummarizer(Summarizer):
    def __init__(self, api_keys: Optional[List[str]] = None, models: Optional[List[str]] = None):
        self.api_keys = api_keys if api_keys is not None else load_api_keys()
        self.fallback_models = models or list(FALLBACK_MODELS)
        self.current_key_index = 0
        self.current_model_name = self.fallback_models[0]
        self.model = None

        if not self.api_keys:
            logger.warning("No GEMINI_API_KEY found. Summarization will fail for every article.")
        else:
            logger.info(f"Loaded {len(self.api_keys)} API key(s)")
            genai.configure(api_key=self.api_keys[self.current_key_index])
            self.model = genai.GenerativeModel(self.current_model_name)

    def _rotate_api_key(self) -> bool:
        """Rotate to next API key when rate limited"""
        if len(self.api_keys) <= 1:
            logger.warning("Only 1 API key available, cannot rotate")
            return False
        old_index = self.current_key_index
        self.current_key_index = (self.current_key_index + 1) % len(self.api_keys)
        genai.configure(api_key=self.api_keys[self.current_key_index])
        logger.info(f"Rotated from API key #{old_index + 1} to API key #{self.current_key_index + 1}")
        return True

    def _use_model(self, model_name: str):
        if model_name != self.current_model_name or self.model is None:
            self.model = genai.GenerativeModel(model_name)
            self.current_model_name = model_name
            logger.info(f"Trying model: {model_name}")

    async def summarize(self, text: str) -> Summary:
        if not self.api_keys:
            raise SummarizationError("No Gemini API key configured")
        if not text or not text.strip():
            raise SummarizationError("Nothing to summarize")

        prompt = PROMPT.format(content=text)
        last_error = None

        # Try every model on a key before rotating to the next key
        for key_index in range(len(self.api_keys)):
            for model_name in self.fallback_models:
                try:
                    self._use_model(model_name)
                    response = await self.model.generate_content_async(prompt)
                    script = parse_script(response.text)
                    if script:
                        return Summary(script=script)
                    logger.warning(f"Model {model_name} returned an empty script, trying next...")
                except Exception as e:
                    last_error = e
                    error_msg = str(e).lower()
                    if "404" in error_msg or "not found" in error_msg:
                        logger.warning(f"Model {model_name} not found (404), skipping to next model...")
                    elif "429" in error_msg or "quota" in error_msg:
                        logger.warning(f"Model {model_name} quota exhausted, trying next...")
                    else:
                        logger.warning(f"Summarization with {model_name} failed: {str(e)[:100]}")

            if key_index < len(self.api_keys) - 1:
                logger.warning(f"All {len(self.fallback_models)} models failed on key #{self.current_key_index + 1}, rotating...")
                self._rotate_api_key()
                self.model = None

        raise SummarizationError(f"All API keys and models exhausted: {last_error}")
