"""Client-side access to the GenStudio API."""

from genstudio.client.api_client import (
    ApiError,
    GenerationRecord,
    ImageUpload,
    StudioApiClient,
    is_retryable,
    poll_generation,
)
from genstudio.client.controller import (
    ControllerState,
    GenerationAttempt,
    GenerationController,
    GenerationRequest,
)

__all__ = [
    "ApiError",
    "ControllerState",
    "GenerationAttempt",
    "GenerationController",
    "GenerationRecord",
    "GenerationRequest",
    "ImageUpload",
    "StudioApiClient",
    "is_retryable",
    "poll_generation",
]
