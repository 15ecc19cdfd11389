"""Background workers for async processing tasks."""

from genstudio.workers.generation_processor import GenerationProcessor

__all__ = [
    "GenerationProcessor",
]
