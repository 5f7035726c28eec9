"""
Client for interacting with an Ollama LLM server.

This client wraps HTTP requests to the Ollama REST API. Requests go to
the ``/api/generate`` endpoint with streaming disabled and carry the
sampling parameters in the ``options`` payload. On error conditions
(HTTP errors, timeouts, unexpected payloads), a :class:`LLMError` is
raised.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import requests

from commit_gen.config.settings import SamplingParams


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())


class LLMError(Exception):
    """Raised when communication with the LLM server fails."""

    pass


_THINKING_PATTERNS = [
    re.compile(rf"<{tag}>.*?</{tag}>", re.DOTALL | re.IGNORECASE)
    for tag in ("think", "thinking", "thought", "reasoning")
]


def strip_thinking_tags(text: str) -> str:
    """Remove thinking process tags from LLM responses.

    Reasoning models often emit their thinking in tags such as
    ``<think>`` or ``<reasoning>`` before the actual answer. This
    function strips those tags and their contents.

    Examples
    --------
    >>> strip_thinking_tags("<think>reasoning...</think><files></files>")
    '<files></files>'
    """
    result = text
    for pattern in _THINKING_PATTERNS:
        result = pattern.sub("", result)
    return result.strip()


@dataclass
class OllamaClient:
    """Client for interacting with an Ollama server.

    Parameters
    ----------
    base_url : str
        Base URL of the Ollama server, e.g. ``"http://localhost"``.
    port : int
        Port number of the Ollama server, e.g. ``11434``.
    request_timeout : float, optional
        Timeout in seconds for each HTTP request. Defaults to 120 seconds.
    """

    base_url: str
    port: int
    request_timeout: float = 120.0

    def _endpoint(self) -> str:
        return f"{self.base_url}:{self.port}/api/generate"

    def generate(
        self,
        prompt: str,
        params: SamplingParams,
        system: Optional[str] = None,
        stop: Optional[List[str]] = None,
    ) -> str:
        """Generate a completion from the model.

        Parameters
        ----------
        prompt : str
            The prompt to send to the model.
        params : SamplingParams
            Model name and sampling options for this request.
        system : str, optional
            System prompt.
        stop : List[str], optional
            Stop sequences; generation ends before any of them.

        Returns
        -------
        str
            The generated response text with thinking tags removed.

        Raises
        ------
        LLMError
            If the request fails or the server returns an error.
        """
        options: Dict[str, Any] = {
            "temperature": params.temperature,
            "top_p": params.top_p,
            "num_predict": params.max_tokens,
        }
        if stop:
            options["stop"] = list(stop)
        payload: Dict[str, Any] = {
            "model": params.model,
            "prompt": prompt,
            "stream": False,
            "options": options,
        }
        if system:
            payload["system"] = system
        url = self._endpoint()
        logger.debug("Sending request to LLM at %s with payload: %s", url, payload)
        try:
            response = requests.post(
                url,
                json=payload,
                timeout=self.request_timeout,
            )
        except requests.Timeout as exc:
            logger.error("LLM request timed out after %ss", self.request_timeout)
            raise LLMError(f"Request timed out after {self.request_timeout}s") from exc
        except requests.RequestException as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise LLMError(str(exc)) from exc
        if response.status_code != 200:
            logger.error(
                "LLM returned non-200 status %s: %s", response.status_code, response.text
            )
            raise LLMError(f"LLM returned status {response.status_code}: {response.text}")
        try:
            data = response.json()
        except ValueError as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise LLMError("Failed to parse LLM response") from exc
        if not isinstance(data, dict):
            raise LLMError("Unexpected response structure from LLM")
        # /api/generate answers in 'response'; /api/chat-style servers use 'message'.
        if "response" in data:
            return strip_thinking_tags(str(data.get("response") or ""))
        if isinstance(data.get("message"), dict):
            return strip_thinking_tags(str(data["message"].get("content") or ""))
        if "error" in data:
            raise LLMError(f"LLM error: {data['error']}")
        raise LLMError("Unexpected response structure from LLM")
