"""
Interactive streaming reader for ShellScribe.

This module renders a streaming completion fragment by fragment while the
user can stop it with ``q`` or ESC. Exclusion patterns mark where the
meaningful output starts and are scrubbed from every fragment after that.
"""

import logging
import re
from contextlib import aclosing
from typing import AsyncIterable, Awaitable, Callable, Iterable, Optional, Union

from shellscribe.models.command_models import ExclusionPattern
from shellscribe.translator.event_stream import (
    is_data,
    is_done,
    iter_payloads,
    parse_content,
)
from shellscribe.ui.keypress import CancellationToken, KeypressListener

logger = logging.getLogger(__name__)

Writer = Callable[[str], None]


def _strip_once(text: str, patterns: Iterable[ExclusionPattern]) -> str:
    for pattern in patterns:
        if pattern is None:
            continue
        if isinstance(pattern, str):
            text = text.replace(pattern, "")
        else:
            text = pattern.sub("", text)
    return text


def strip_patterns(text: str, patterns: Iterable[ExclusionPattern]) -> str:
    """
    Remove every occurrence of the given patterns from ``text``.

    Regular expressions are substituted, strings are removed literally.
    Stripping repeats until nothing changes, so stripping the result again
    is a no-op.

    Args:
        text (str): Fragment to clean.
        patterns (Iterable[ExclusionPattern]): Patterns to remove; ``None``
            entries are ignored.

    Returns:
        str: The cleaned fragment.
    """
    patterns = list(patterns)
    while True:
        stripped = _strip_once(text, patterns)
        if stripped == text:
            return stripped
        text = stripped


def matches_pattern(text: str, pattern: Union[re.Pattern, str]) -> bool:
    if isinstance(pattern, str):
        return pattern in text
    return pattern.search(text) is not None


def read_data(
    chunks: AsyncIterable[Union[str, bytes]],
    *excluded: ExclusionPattern,
    token: Optional[CancellationToken] = None,
    listener_factory: Callable[[CancellationToken], KeypressListener] = KeypressListener,
) -> Callable[[Writer], Awaitable[str]]:
    """
    Prepare a live reader over a streaming completion.

    Until the first exclusion pattern matches the text received so far,
    nothing is forwarded; the fragment that completes the match is dropped
    too. Without exclusion patterns every fragment is forwarded. After that
    each fragment is stripped of all patterns and handed to the writer in
    arrival order.

    Args:
        chunks (AsyncIterable[Union[str, bytes]]): Raw chunks of the stream.
        *excluded (ExclusionPattern): Exclusion patterns; the first one
            marks where the output starts.
        token (Optional[CancellationToken]): Stop flag; a fresh one is used
            when None. It is checked before every payload.
        listener_factory (Callable): Builds the key listener that cancels
            the token.

    Returns:
        Callable[[Writer], Awaitable[str]]: Coroutine function taking the
        writer and resolving to the forwarded text.
    """
    excluded_prefix = excluded[0] if excluded else None

    async def reader(writer: Writer) -> str:
        stop = token if token is not None else CancellationToken()
        data = ""
        buffer = ""
        data_start = False

        with listener_factory(stop):
            async with aclosing(iter_payloads(chunks)) as payloads:
                async for payload in payloads:
                    if is_done(payload) or stop.cancelled:
                        if stop.cancelled:
                            logger.debug("Stream stopped by user")
                        return data

                    if not is_data(payload):
                        continue

                    content = parse_content(payload)
                    if not data_start:
                        buffer += content
                        if excluded_prefix is None or matches_pattern(
                            buffer, excluded_prefix
                        ):
                            data_start = True
                            buffer = ""
                            if excluded_prefix is not None:
                                continue

                    if data_start and content:
                        clean = strip_patterns(content, excluded)
                        if clean:
                            data += clean
                            writer(clean)

        return data

    return reader
