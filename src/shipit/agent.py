"""Streaming commit proposals out of the language model.

Every provider is asked for the same schema, ``{"elements": [CommitBatch, ...]}``,
and its raw text chunks are fed through :func:`iter_array_elements`, which
hands out each batch as soon as its closing brace arrives. The resulting
iterator is lazy, forward-only and single-pass: a retry needs a new call.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterable, Iterator

import anthropic
import openai
from google import genai
from google.genai import types
from pydantic import BaseModel, ValidationError

from shipit.config import AIProviderConfig, AnthropicProvider, GoogleProvider, OpenAIProvider
from shipit.errors import AIProviderError
from shipit.models import CommitBatch
from shipit.prompts import RESPONSE_SCHEMA, SYSTEM_INSTRUCTION

logger = logging.getLogger(__name__)

RESPONSE_TOOL_NAME = "commit_batches"

_WHITESPACE_AND_COMMAS = " \t\r\n,"


class ResponseEnvelope(BaseModel):
    """Pydantic form of RESPONSE_SCHEMA for providers that take a model class."""

    elements: list[CommitBatch]


def iter_array_elements(chunks: Iterable[str]) -> Iterator[Any]:
    """Yield each element of the first JSON array in a chunked text stream.

    Elements are decoded as soon as they are complete, so the caller sees
    them while the provider is still producing the rest.

    Args:
        chunks: Text fragments in arrival order.

    Yields:
        Decoded JSON values, in array order.

    Raises:
        AIProviderError: If the text holds no array or ends mid-element.
    """
    decoder = json.JSONDecoder()
    buffer = ""
    pos: int | None = None
    closed = False

    for chunk in chunks:
        if closed or not chunk:
            continue
        buffer += chunk

        if pos is None:
            start = buffer.find("[")
            if start == -1:
                continue
            pos = start + 1

        while True:
            while pos < len(buffer) and buffer[pos] in _WHITESPACE_AND_COMMAS:
                pos += 1
            if pos >= len(buffer):
                break
            if buffer[pos] == "]":
                closed = True
                break
            try:
                element, end = decoder.raw_decode(buffer, pos)
            except json.JSONDecodeError:
                # Incomplete element, wait for the next chunk
                break
            pos = end
            yield element

    if pos is None:
        raise AIProviderError("Model response did not contain any commit batches")
    if not closed and buffer[pos:].strip(_WHITESPACE_AND_COMMAS):
        raise AIProviderError("Model response ended in the middle of a commit batch")


def _stream_anthropic(provider: AnthropicProvider, system: str, prompt: str) -> Iterator[str]:
    client = anthropic.Anthropic(api_key=provider.api_key)
    options: dict[str, Any] = {}
    if provider.temperature is not None:
        options["temperature"] = provider.temperature

    # A forced tool call is how Anthropic constrains output to a schema
    with client.messages.stream(
        model=provider.model,
        max_tokens=provider.max_tokens,
        system=system,
        messages=[{"role": "user", "content": prompt}],
        tools=[
            {
                "name": RESPONSE_TOOL_NAME,
                "description": "Report the proposed commits, grouped in batches.",
                "input_schema": RESPONSE_SCHEMA,
            }
        ],
        tool_choice={"type": "tool", "name": RESPONSE_TOOL_NAME},
        **options,
    ) as stream:
        for event in stream:
            if event.type == "input_json":
                yield event.partial_json


def _stream_openai(provider: OpenAIProvider, system: str, prompt: str) -> Iterator[str]:
    client = openai.OpenAI(api_key=provider.api_key)
    if provider.system_in_prompt:
        messages = [{"role": "user", "content": f"{system}\n\n{prompt}"}]
    else:
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]

    stream = client.chat.completions.create(
        model=provider.model,
        messages=messages,
        response_format={
            "type": "json_schema",
            "json_schema": {"name": RESPONSE_TOOL_NAME, "schema": RESPONSE_SCHEMA, "strict": True},
        },
        stream=True,
    )
    with stream:
        for chunk in stream:
            if chunk.choices and chunk.choices[0].delta.content:
                yield chunk.choices[0].delta.content


def _stream_google(provider: GoogleProvider, system: str, prompt: str) -> Iterator[str]:
    client = genai.Client(api_key=provider.api_key)
    config = types.GenerateContentConfig(
        system_instruction=system,
        response_mime_type="application/json",
        response_schema=ResponseEnvelope,
        thinking_config=types.ThinkingConfig(
            thinking_budget=provider.thinking_budget,
            include_thoughts=provider.include_thoughts,
        ),
    )
    for chunk in client.models.generate_content_stream(
        model=provider.model,
        contents=prompt,
        config=config,
    ):
        if chunk.text:
            yield chunk.text


_STREAMERS: dict[str, Callable[..., Iterator[str]]] = {
    "anthropic": _stream_anthropic,
    "openai": _stream_openai,
    "google": _stream_google,
}


def stream_commit_batches(
    provider: AIProviderConfig,
    prompt: str,
    system: str = SYSTEM_INSTRUCTION,
) -> Iterator[CommitBatch]:
    """Open one model invocation and yield commit batches as they arrive.

    Nothing is sent until the first batch is requested.

    Args:
        provider: Selected provider and its options.
        prompt: The user prompt built from the repository state.
        system: The system instruction.

    Yields:
        CommitBatch objects in the order the model emits them.

    Raises:
        AIProviderError: On any provider, network or response format failure.
    """
    streamer = _STREAMERS[provider.provider]
    logger.info("Requesting commit proposals from %s (%s)", provider.name, provider.model)

    count = 0
    try:
        for element in iter_array_elements(streamer(provider, system, prompt)):
            try:
                batch = CommitBatch.model_validate(element)
            except ValidationError as e:
                raise AIProviderError(f"Model returned a malformed commit batch: {e}")
            count += 1
            logger.debug("Received batch %d with %d commits", count, len(batch.commits))
            yield batch
    except AIProviderError:
        raise
    except Exception as e:
        raise AIProviderError(f"AI request failed: {e}") from e

    logger.info("Model stream finished after %d batches", count)
