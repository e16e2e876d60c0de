"""Generation collaborators."""

from gentree.generators.base import ImageGenerator
from gentree.generators.base import TextGenerator
from gentree.generators.http_image import OpenAIImageGenerator
from gentree.generators.mock import MockImageGenerator
from gentree.generators.mock import MockTextGenerator
from gentree.generators.pydantic_ai_text import PydanticAITextGenerator

__all__ = [
    "ImageGenerator",
    "MockImageGenerator",
    "MockTextGenerator",
    "OpenAIImageGenerator",
    "PydanticAITextGenerator",
    "TextGenerator",
]
