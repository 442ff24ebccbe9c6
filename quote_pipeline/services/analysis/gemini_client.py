from typing import Any, Dict, List, Optional, Union

from google import genai
from google.genai import types

from quote_pipeline.core.exceptions import APIClientError
from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)


class GeminiClient:
    """Wrapper for Google Gemini API client.

    Makes exactly one generation call per request; analysis failures are
    routed to human review instead of being retried.
    """

    def __init__(self, api_key: str, model: str = "gemini-2.0-flash", timeout: int = 120):
        """Initialize Gemini client.

        Args:
            api_key: Gemini API key
            model: Model name to use
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.client = genai.Client(
            api_key=self.api_key,
            http_options=types.HttpOptions(timeout=timeout * 1000),
        )
        LOGGER.info(f"Initialized Gemini client with model {self.model}")

    async def generate_content(
        self,
        contents: Union[str, List[Union[str, Dict[str, Any]]]],
        system_instruction: Optional[str] = None,
        generation_config: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Generate content using Gemini model.

        Args:
            contents: Input content (string or list of parts)
            system_instruction: Optional system instruction
            generation_config: Optional generation config (temperature, etc.)

        Returns:
            Generated text response

        Raises:
            APIClientError: If generation fails
        """
        config = types.GenerateContentConfig(temperature=0.0)
        if generation_config:
            if "temperature" in generation_config:
                config.temperature = generation_config["temperature"]
            if "max_output_tokens" in generation_config:
                config.max_output_tokens = generation_config["max_output_tokens"]
            if "response_mime_type" in generation_config:
                config.response_mime_type = generation_config["response_mime_type"]
        if system_instruction:
            config.system_instruction = system_instruction

        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=config,
            )
        except Exception as e:
            LOGGER.error(f"Gemini generation failed: {e}", exc_info=True)
            raise APIClientError(f"Gemini generation failed: {e}", original_error=e) from e

        if not response.text:
            LOGGER.warning("Empty response from Gemini")
            return ""
        return response.text
