import json
import re
from typing import Any, Dict, List, Union

from quote_pipeline.utils.logging import get_logger

LOGGER = get_logger(__name__)

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def parse_json_safely(text: str) -> Union[Dict[str, Any], List[Any], None]:
    """Parse JSON from LLM output.

    Handles markdown code fences, surrounding whitespace and leading/trailing
    prose around a single JSON object.

    Args:
        text: The text containing JSON

    Returns:
        Parsed JSON value or None if parsing fails
    """
    if not text:
        return None

    cleaned_text = _FENCE_RE.sub("", text.strip()).strip()

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        LOGGER.warning(f"Initial JSON parse failed: {e}, attempting repairs...")

    # Fall back to the outermost object in the text
    start = cleaned_text.find("{")
    end = cleaned_text.rfind("}")
    if start != -1 and end > start:
        try:
            return json.loads(cleaned_text[start : end + 1])
        except json.JSONDecodeError as e:
            LOGGER.error(f"Failed to parse JSON object: {e}")
            return None

    LOGGER.error("No JSON object found in text")
    return None
