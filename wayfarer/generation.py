"""Content generation — produces a dialog node on demand.

The engine injects a generator callable matching the protocol:

    async def __call__(self, request: GenerationRequest) -> DialogNode: ...

The engine owns the timeout (it wraps the call in asyncio.wait_for) and the
loading/failed states; a generator only has to turn a request into a node or
raise GenerationFailed.

Two implementations are provided:

    HttpDialogGenerator — renders a Handlebars prompt and calls a KoboldCpp or
                          OpenAI-compatible completion backend over HTTP.
    EchoGenerator       — returns the rendered prompt as narrator text. Useful
                          for exercising the loading flow without a model.
"""

from __future__ import annotations

import logging
from typing import Literal, Protocol

import httpx
from pydantic import BaseModel, Field

from wayfarer.errors import GenerationFailed, GenerationTimeout
from wayfarer.models import DialogNode, Phase
from wayfarer.prompts import DEFAULT_DIALOG_TEMPLATE, PromptError, build_context, render_prompt

logger = logging.getLogger(__name__)

GENERATED_PREFIX = "generated:"


def generated_node_id(request_id: str) -> str:
    return f"{GENERATED_PREFIX}{request_id}"


class GenerationRequest(BaseModel):
    request_id: str
    speaker: str = "narrator"
    speaker_name: str = ""
    hint: str = ""
    scene_id: str
    scene_name: str = ""
    scene_description: str = ""
    phase: Phase
    flags: list[str] = Field(default_factory=list)
    recent_lines: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Protocol: every generator implementation must match this signature
# ---------------------------------------------------------------------------

class DialogGenerator(Protocol):
    async def __call__(self, request: GenerationRequest) -> DialogNode: ...


def _node_for(request: GenerationRequest, text: str) -> DialogNode:
    return DialogNode(
        id=generated_node_id(request.request_id),
        speaker=request.speaker,
        text=text,
    )


# ---------------------------------------------------------------------------
# HttpDialogGenerator: connects to a real backend
# ---------------------------------------------------------------------------

ProviderFormat = Literal["koboldcpp", "openai"]


class HttpDialogGenerator:
    """Dialog generator backed by a text-completion server.

    Supported formats:
      "koboldcpp"  — POST /api/v1/generate  {"prompt": ..., "max_length": ...}
                     Response: {"results": [{"text": "..."}]}
      "openai"     — POST /v1/completions   {"model": ..., "prompt": ..., "max_tokens": ...}
                     Response: {"choices": [{"text": "..."}]}

    Args:
        provider_url:    Server root, e.g. "http://localhost:5001".
        api_key:         Sent as a Bearer token when non-empty.
        provider_format: Which of the two wire formats to speak.
        model:           Model name for the openai format; ignored otherwise.
        timeout:         HTTP timeout in seconds. The engine applies its own
                         deadline on top of this.
        template:        Handlebars prompt template.
        max_length:      Upper bound on generated tokens.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 60.0,
        template: str = DEFAULT_DIALOG_TEMPLATE,
        max_length: int = 120,
    ) -> None:
        self._base_url = provider_url.rstrip("/")
        self._api_key = api_key
        self._format = provider_format
        self._model = model
        self._timeout = timeout
        self._template = template
        self._max_length = max_length

    def _headers(self) -> dict[str, str]:
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_request(self, prompt: str) -> tuple[str, dict]:
        """Endpoint URL and JSON body for one completion call."""
        if self._format == "openai":
            url = f"{self._base_url}/v1/completions"
            body: dict = {"prompt": prompt, "max_tokens": self._max_length}
            if self._model:
                body["model"] = self._model
            return url, body

        # koboldcpp (default)
        url = f"{self._base_url}/api/v1/generate"
        return url, {"prompt": prompt, "max_length": self._max_length}

    def _parse_response(self, data: dict) -> str:
        """Pull the completion text out of a decoded response."""
        if self._format == "openai":
            choices = data.get("choices")
            if not choices or "text" not in choices[0]:
                raise GenerationFailed("Unexpected response format from OpenAI-compatible backend")
            return choices[0]["text"]

        # koboldcpp
        results = data.get("results")
        if not results or "text" not in results[0]:
            raise GenerationFailed("Unexpected response format from KoboldCpp backend")
        return results[0]["text"]

    def render(self, request: GenerationRequest) -> str:
        try:
            return render_prompt(self._template, build_context(request))
        except PromptError as e:
            raise GenerationFailed(str(e)) from e

    async def __call__(self, request: GenerationRequest) -> DialogNode:
        prompt = self.render(request)
        url, body = self._build_request(prompt)
        logger.debug(
            "generation call request=%s url=%s prompt_len=%d",
            request.request_id, url, len(prompt),
        )

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
                resp.raise_for_status()
        except httpx.ConnectError as e:
            raise GenerationFailed(f"Cannot connect to generation backend at {self._base_url}") from e
        except httpx.HTTPStatusError as e:
            raise GenerationFailed(
                f"Generation backend returned HTTP {e.response.status_code}"
            ) from e
        except httpx.TimeoutException as e:
            raise GenerationTimeout(f"Generation backend timed out after {self._timeout}s") from e

        text = self._parse_response(resp.json()).strip()
        if not text:
            raise GenerationFailed("Generation backend returned an empty line")
        logger.debug("generation response request=%s len=%d", request.request_id, len(text))
        return _node_for(request, text)


# ---------------------------------------------------------------------------
# EchoGenerator: no network, returns the rendered prompt
# ---------------------------------------------------------------------------

class EchoGenerator:
    """Returns the rendered prompt as the generated line. No network calls."""

    def __init__(self, template: str = DEFAULT_DIALOG_TEMPLATE) -> None:
        self._template = template

    async def __call__(self, request: GenerationRequest) -> DialogNode:
        prompt = render_prompt(self._template, build_context(request))
        logger.debug("EchoGenerator request=%s prompt_len=%d", request.request_id, len(prompt))
        return _node_for(request, prompt.strip())
