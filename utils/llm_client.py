"""Centralized LLM client wrapper for all agents."""

import os
import re
import json
import base64
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List, Sequence
import time
import asyncio

from utils.config import get_secret
from utils.errors import LLMError, PaymentRequiredError, RateLimitError

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r'\{[\s\S]*\}')
_DATA_URI = re.compile(r'^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.+)$', re.DOTALL)


def _is_rate_limit(error: Exception) -> bool:
    text = str(error).lower()
    return "429" in text or "rate_limit" in text or "rate limit" in text or "overloaded" in text


def _is_payment_required(error: Exception) -> bool:
    text = str(error).lower()
    return "402" in text or "payment required" in text or "credit balance" in text


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the outermost {...} object embedded in free text, or None."""
    if not text:
        return None
    match = _JSON_OBJECT.search(text)
    if not match:
        return None
    try:
        result = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return result if isinstance(result, dict) else None


class LLMClient:
    """
    Centralized LLM client for making API calls.

    Supports multiple providers: 'anthropic' (default), 'gemini'.
    """

    # Seconds to wait before each call, per provider
    REQUEST_SPACING = {"anthropic": 3.0, "gemini": 4.0}
    ASYNC_REQUEST_SPACING = {"anthropic": 2.0, "gemini": 4.0}
    RETRY_DELAY = 10.0

    def __init__(self, api_key: Optional[str] = None, provider: Optional[str] = None, model: Optional[str] = None):
        """
        Initialize the LLM client.

        Args:
            api_key: API key for the chosen provider.
            provider: 'anthropic' or 'gemini'. Defaults to LLM_PROVIDER env var or 'anthropic'.
            model: Model name. Defaults depend on provider.
        """
        self.provider = (provider or os.environ.get('LLM_PROVIDER', 'anthropic')).lower()
        self.api_key = api_key
        self.model = model
        self._client = None
        self._async_client = None
        self._async_loop = None

        if self.provider == 'gemini':
            self.api_key = self.api_key or get_secret('GEMINI_API_KEY')
            self.model = self.model or "gemini-flash-latest"
        else:
            self.api_key = self.api_key or get_secret('ANTHROPIC_API_KEY')
            self.model = self.model or "claude-sonnet-4-5-20250929"

    @property
    def client(self):
        """Lazy initialization of the API client."""
        if self._client is None:
            if self.provider == 'gemini':
                self._init_gemini()
            else:
                self._init_anthropic()
        return self._client

    def _init_anthropic(self):
        if not self.api_key:
            raise LLMError("anthropic", "ANTHROPIC_API_KEY not set.")
        import anthropic
        self._client = anthropic.Anthropic(api_key=self.api_key)

    def _init_anthropic_async(self):
        if not self.api_key:
            raise LLMError("anthropic", "ANTHROPIC_API_KEY not set.")
        import anthropic
        self._async_client = anthropic.AsyncAnthropic(api_key=self.api_key)

    def _init_gemini(self):
        if not self.api_key:
            raise LLMError("gemini", "GEMINI_API_KEY not set.")
        import google.generativeai as genai
        genai.configure(api_key=self.api_key)
        self._client = genai

    def is_available(self) -> bool:
        """Check if the LLM client is available."""
        return bool(self.api_key)

    def load_prompt(self, prompt_name: str, base_path: Optional[Path] = None) -> str:
        """
        Load a prompt template from the prompts directory.
        """
        if base_path is None:
            base_path = Path(__file__).parent.parent / "prompts"

        prompt_path = base_path / f"{prompt_name}.txt"
        if prompt_path.exists():
            return prompt_path.read_text(encoding='utf-8')
        return ""

    def _map_error(self, error: Exception) -> Exception:
        """Translate provider failures into the project's error types."""
        if isinstance(error, LLMError):
            return error
        if _is_rate_limit(error):
            return RateLimitError(self.provider)
        if _is_payment_required(error):
            return PaymentRequiredError(self.provider)
        return LLMError(self.provider, str(error))

    # ------------------------------------------------------------------
    # Message building
    # ------------------------------------------------------------------

    @staticmethod
    def _anthropic_image_block(image: str) -> Optional[Dict[str, Any]]:
        match = _DATA_URI.match(image)
        if match:
            return {
                "type": "image",
                "source": {"type": "base64", "media_type": match.group("mime"), "data": match.group("data")},
            }
        if image.startswith(("http://", "https://")):
            return {"type": "image", "source": {"type": "url", "url": image}}
        return None

    def _anthropic_kwargs(self, prompt: str, max_tokens: int, temperature: float,
                          system: Optional[str], images: Optional[Sequence[str]]) -> Dict[str, Any]:
        content: Any = prompt
        if images:
            blocks: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
            for image in images:
                block = self._anthropic_image_block(image)
                if block:
                    blocks.append(block)
            content = blocks
        kwargs = {
            "model": self.model,
            "max_tokens": max_tokens,
            "messages": [{"role": "user", "content": content}],
            "temperature": temperature,
        }
        if system:
            kwargs["system"] = system
        return kwargs

    def _gemini_model_and_contents(self, prompt: str, system: Optional[str], images: Optional[Sequence[str]]):
        genai = self.client
        model_name = self.model if "gemini" in self.model else "gemini-1.5-flash"
        model = genai.GenerativeModel(model_name=model_name, system_instruction=system or None)

        contents: List[Any] = [prompt]
        for image in images or []:
            match = _DATA_URI.match(image)
            if match:
                contents.append({"mime_type": match.group("mime"), "data": base64.b64decode(match.group("data"))})
            else:
                logger.debug("Skipping non-inline image for Gemini: %s", image[:80])
        return genai, model, contents

    # ------------------------------------------------------------------
    # Sync completion
    # ------------------------------------------------------------------

    def complete(
        self,
        prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        system: Optional[str] = None,
        images: Optional[Sequence[str]] = None,
    ) -> str:
        """
        Complete the prompt using the configured provider.
        """
        time.sleep(self.REQUEST_SPACING.get(self.provider, 3.0))

        try:
            return self._complete_once(prompt, max_tokens, temperature, system, images)
        except Exception as e:
            if _is_rate_limit(e):
                logger.warning("Rate limit hit. Sleeping %ss and retrying...", self.RETRY_DELAY)
                time.sleep(self.RETRY_DELAY)
                try:
                    return self._complete_once(prompt, max_tokens, temperature, system, images)
                except Exception as retry_error:
                    raise self._map_error(retry_error) from retry_error
            raise self._map_error(e) from e

    def _complete_once(self, prompt, max_tokens, temperature, system, images) -> str:
        if self.provider == 'gemini':
            genai, model, contents = self._gemini_model_and_contents(prompt, system, images)
            config = genai.types.GenerationConfig(max_output_tokens=max_tokens, temperature=temperature)
            return model.generate_content(contents, generation_config=config).text

        response = self.client.messages.create(
            **self._anthropic_kwargs(prompt, max_tokens, temperature, system, images)
        )
        return response.content[0].text

    def complete_json(
        self,
        prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        system: Optional[str] = None,
        images: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """
        Get a JSON completion from the LLM.
        """
        if self.provider == 'gemini' and "JSON" not in prompt:
            prompt += "\n\nRespond strictly in valid JSON format."

        response_text = self.complete(prompt, max_tokens, temperature, system, images)
        return self.parse_json_response(response_text)

    def parse_json_response(self, response_text: str) -> Dict[str, Any]:
        """
        Parse JSON from an LLM response, handling code blocks and prose
        around the object.
        """
        cleaned_text = (response_text or "").strip()
        if "```json" in cleaned_text:
            cleaned_text = cleaned_text.split("```json")[1].split("```")[0]
        elif "```" in cleaned_text:
            cleaned_text = cleaned_text.split("```")[1]

        cleaned_text = cleaned_text.strip()

        try:
            result = json.loads(cleaned_text)
            if result == {} or result is None:
                logger.warning("LLM returned empty JSON response")
            return result if isinstance(result, dict) else {"data": result}
        except json.JSONDecodeError:
            embedded = extract_json_object(response_text or "")
            if embedded is not None:
                return embedded
            logger.warning("Error parsing JSON from LLM output: %s...", (response_text or "")[:100])
            return {}

    def validate_response(self, response: Dict[str, Any], expected_fields: Dict[str, type]) -> tuple:
        """
        Validate that an LLM response contains expected fields.

        Args:
            response: The parsed JSON response dict
            expected_fields: Dict mapping field_name -> expected type
                e.g. {"violations": list, "strengths": list}

        Returns:
            Tuple of (response, missing_fields_list)
        """
        missing_fields = []
        for field_name, field_type in expected_fields.items():
            value = response.get(field_name)
            if value is None:
                missing_fields.append(field_name)
            elif not isinstance(value, field_type):
                missing_fields.append(field_name)

        if missing_fields:
            logger.warning("LLM response missing fields: %s", ', '.join(missing_fields))

        return (response, missing_fields)

    def format_prompt(self, template: str, **kwargs) -> str:
        """
        Format a prompt template with variables.
        """
        result = template
        for key, value in kwargs.items():
            placeholder = "{" + key + "}"
            if isinstance(value, (list, dict)):
                value = json.dumps(value, indent=2)
            result = result.replace(placeholder, str(value))
        return result

    def analyze_with_prompt(
        self,
        prompt_name: str,
        max_tokens: int = 2000,
        images: Optional[Sequence[str]] = None,
        **variables
    ) -> Dict[str, Any]:
        """
        Load a prompt, format it with variables, and get JSON response.
        """
        template = self.load_prompt(prompt_name)
        if not template:
            raise ValueError(f"Prompt template not found: {prompt_name}")

        prompt = self.format_prompt(template, **variables)
        return self.complete_json(prompt, max_tokens, images=images)

    # ------------------------------------------------------------------
    # Async completion
    # ------------------------------------------------------------------

    async def complete_async(
        self,
        prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        system: Optional[str] = None,
        images: Optional[Sequence[str]] = None,
    ) -> str:
        """
        Asynchronously complete the prompt.
        """
        await asyncio.sleep(self.ASYNC_REQUEST_SPACING.get(self.provider, 2.0))

        try:
            return await self._complete_once_async(prompt, max_tokens, temperature, system, images)
        except Exception as e:
            if _is_rate_limit(e):
                logger.warning("Rate limit hit. Sleeping %ss and retrying...", self.RETRY_DELAY)
                await asyncio.sleep(self.RETRY_DELAY)
                try:
                    return await self._complete_once_async(prompt, max_tokens, temperature, system, images)
                except Exception as retry_error:
                    raise self._map_error(retry_error) from retry_error
            raise self._map_error(e) from e

    async def _complete_once_async(self, prompt, max_tokens, temperature, system, images) -> str:
        if self.provider == 'gemini':
            genai, model, contents = self._gemini_model_and_contents(prompt, system, images)
            config = genai.types.GenerationConfig(max_output_tokens=max_tokens, temperature=temperature)
            response = await model.generate_content_async(contents, generation_config=config)
            return response.text

        # the async client's connection pool is bound to the loop that created it
        loop = asyncio.get_running_loop()
        if self._async_client is None or self._async_loop is not loop:
            self._init_anthropic_async()
            self._async_loop = loop
        response = await self._async_client.messages.create(
            **self._anthropic_kwargs(prompt, max_tokens, temperature, system, images)
        )
        return response.content[0].text

    async def complete_json_async(
        self,
        prompt: str,
        max_tokens: int = 2000,
        temperature: float = 0.0,
        system: Optional[str] = None,
        images: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        """
        Get a JSON completion asynchronously.
        """
        if self.provider == 'gemini' and "JSON" not in prompt:
            prompt += "\n\nRespond strictly in valid JSON format."

        response_text = await self.complete_async(prompt, max_tokens, temperature, system, images)
        return self.parse_json_response(response_text)

    async def analyze_with_prompt_async(
        self,
        prompt_name: str,
        max_tokens: int = 2000,
        images: Optional[Sequence[str]] = None,
        **variables
    ) -> Dict[str, Any]:
        """
        Async version of analyze_with_prompt.
        """
        template = self.load_prompt(prompt_name)
        if not template:
            raise ValueError(f"Prompt template not found: {prompt_name}")

        prompt = self.format_prompt(template, **variables)
        return await self.complete_json_async(prompt, max_tokens, images=images)
