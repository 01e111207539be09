"""
Server-sent event decoding for ShellScribe.

This module turns the raw chunk sequence of a streaming chat completion
into payload segments and content deltas.
"""

import codecs
import json
import logging
import re
from contextlib import aclosing
from typing import AsyncIterable, AsyncIterator, Union

logger = logging.getLogger(__name__)

PAYLOAD_DELIMITER = "\n\n"
DONE_SENTINEL = "[DONE]"

_DATA_PREFIX = re.compile(r"^\n?data:\s*", re.MULTILINE)


async def iter_payloads(
    chunks: AsyncIterable[Union[str, bytes]],
) -> AsyncIterator[str]:
    """
    Split a raw chunk stream into SSE payloads.

    Partial payloads are carried over to the next chunk, so a delimiter
    that straddles two network reads still yields whole payloads. Whatever
    remains when the transport closes is yielded last.

    Args:
        chunks (AsyncIterable[Union[str, bytes]]): Raw transport chunks.

    Yields:
        str: Non-empty payload segments in arrival order.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""

    async for chunk in chunks:
        if isinstance(chunk, bytes):
            chunk = decoder.decode(chunk)
        # Normalise after joining: a CRLF can straddle two reads, and a trailing
        # "\r" stays in the undelimited tail until its "\n" arrives
        pending = (pending + chunk).replace("\r\n", "\n")

        *complete, pending = pending.split(PAYLOAD_DELIMITER)
        for payload in complete:
            if payload:
                yield payload

    pending += decoder.decode(b"", final=True)
    if pending.strip():
        logger.debug("Stream closed with an undelimited payload")
        yield pending


def is_done(payload: str) -> bool:
    """Check whether a payload is the end-of-stream sentinel."""
    return _DATA_PREFIX.sub("", payload).strip() == DONE_SENTINEL


def is_data(payload: str) -> bool:
    return payload.lstrip("\n").startswith("data:")


def parse_content(payload: str) -> str:
    """
    Extract the content delta from a ``data:`` payload.

    Malformed JSON does not raise: the returned string describes the
    failure and is shown to the user like any other content.

    Args:
        payload (str): A single SSE payload.

    Returns:
        str: ``choices[0].delta.content`` or an empty string when absent.
    """
    data = _DATA_PREFIX.sub("", payload)
    try:
        delta = json.loads(data.strip())
    except json.JSONDecodeError as e:
        logger.debug(f"Could not decode stream payload: {payload!r}")
        return f"Error with JSON.parse and {payload}.\n{e}"

    try:
        content = delta["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        return ""
    if not isinstance(content, str):
        if content is not None:
            logger.debug(f"Ignoring non-text content in stream payload: {payload!r}")
        return ""
    return content


async def iter_deltas(
    chunks: AsyncIterable[Union[str, bytes]],
) -> AsyncIterator[str]:
    """Yield content deltas up to, not including, the ``[DONE]`` sentinel."""
    async with aclosing(iter_payloads(chunks)) as payloads:
        async for payload in payloads:
            if is_done(payload):
                return
            if is_data(payload):
                yield parse_content(payload)
