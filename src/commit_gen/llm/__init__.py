"""
Language model integration for commit_gen.

This package contains the :class:`OllamaClient` for communicating with
an Ollama server, the prompt builder, the lenient response parser and
the :class:`CommitMessageGenerator` that chains them.
"""

from .ollama_client import OllamaClient, LLMError  # noqa: F401
from .prompt_builder import PromptBuilder, TemplateError  # noqa: F401
from .response_parser import MalformedResponseError, parse_response  # noqa: F401
from .commit_message_generator import CommitMessageGenerator  # noqa: F401
