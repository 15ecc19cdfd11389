"""Input validation for generation requests.

Validates prompt, style, uploaded image and list limits before any state is
created. Every failure raises ValidationError with a user-facing message.
"""

import re

from genstudio.models.generation import GenerationStyle
from genstudio.services.exceptions import ValidationError

MAX_PROMPT_LENGTH = 500
ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/jpg", "image/png"})
DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def validate_prompt(prompt: str | None) -> str:
    """Validate prompt text for generation.

    Args:
        prompt: Raw prompt from the form

    Returns:
        Prompt with surrounding whitespace removed

    Raises:
        ValidationError: If prompt is missing, blank, or longer than 500 characters
    """
    if prompt is None or not prompt.strip():
        raise ValidationError("Prompt is required")

    prompt = prompt.strip()
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValidationError("Prompt too long")

    return prompt


def validate_style(style: str | None) -> GenerationStyle:
    """Validate style against the fixed set of options.

    Raises:
        ValidationError: If style is missing or not one of the known options
    """
    try:
        return GenerationStyle(style)
    except ValueError:
        raise ValidationError("Invalid style option")


def validate_image(
    content_type: str | None,
    size: int,
    max_bytes: int = DEFAULT_MAX_IMAGE_BYTES,
) -> None:
    """Validate an uploaded image's declared type and size.

    Type is checked first, so a large file of the wrong type reports the type
    problem.

    Raises:
        ValidationError: "Only JPEG and PNG files are allowed" or
            "File size must be less than 10MB"
    """
    if (content_type or "").lower() not in ALLOWED_IMAGE_TYPES:
        raise ValidationError("Only JPEG and PNG files are allowed")

    if size > max_bytes:
        raise ValidationError(f"File size must be less than {max_bytes // (1024 * 1024)}MB")


def clamp_limit(raw: str | int | None, default: int = 5, maximum: int = 20) -> int:
    """Parse a list limit leniently and clamp it to [1, maximum].

    Only the leading integer counts ("3abc" and "1.5" read as 3 and 1).
    Missing values and values without leading digits fall back to the default.
    """
    if isinstance(raw, int):
        value = raw
    else:
        match = _LEADING_INT.match(raw or "")
        if match is None:
            return default
        value = int(match.group(1))
    return min(max(value, 1), maximum)
