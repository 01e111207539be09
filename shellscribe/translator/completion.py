"""
Script generation pipeline for ShellScribe.

This module ties the prompt builder, the completion client and the stream
readers together: it generates and revises scripts, splits responses into
script and explanation, and streams explanations live.
"""

import logging
import re
from typing import AsyncIterable, Optional, Union

from shellscribe.models.command_models import ScriptExplanationPair
from shellscribe.translator.event_stream import iter_deltas
from shellscribe.translator.openai_client import CompletionClient, StreamHandle
from shellscribe.translator.prompt_builder import PromptBuilder
from shellscribe.translator.stream_reader import Writer, read_data
from shellscribe.ui.keypress import CancellationToken

logger = logging.getLogger(__name__)

# First ```bash, ```sh or untagged fenced block
CODE_BLOCK_PATTERN = re.compile(r"```(?:bash|sh)?\s*\n([\s\S]*?)\n```", re.IGNORECASE)


async def read_full_response(chunks: AsyncIterable[Union[str, bytes]]) -> str:
    """
    Read a streaming completion to the end.

    Args:
        chunks (AsyncIterable[Union[str, bytes]]): Raw chunks of the stream.

    Returns:
        str: All content deltas before the ``[DONE]`` sentinel, in order.
    """
    parts = []
    async for delta in iter_deltas(chunks):
        parts.append(delta)
    return "".join(parts)


def extract_script_and_explanation(full_response: str) -> ScriptExplanationPair:
    """
    Split a response into the command and its explanation.

    Only the first code block counts. Without one the script is empty and
    the whole response becomes the explanation.

    Args:
        full_response (str): Accumulated response text.

    Returns:
        ScriptExplanationPair: The script and the explanation.
    """
    match = CODE_BLOCK_PATTERN.search(full_response)
    if match and match.group(1):
        script = match.group(1).strip()
        explanation = (full_response[: match.start()] + full_response[match.end() :]).strip()
        return ScriptExplanationPair(script=script, explanation=explanation)

    logger.debug("No code block found in response")
    return ScriptExplanationPair(script="", explanation=full_response.strip())


class ScriptAndInfo:
    """A generated script and its explanation, ready to be written out."""

    def __init__(self, pair: ScriptExplanationPair):
        self.pair = pair

    @property
    def script(self) -> str:
        return self.pair.script

    @property
    def explanation(self) -> str:
        return self.pair.explanation

    def read_script(self, writer: Writer) -> str:
        if self.script:
            writer(self.script)
        return self.script

    def read_info(self, writer: Writer) -> str:
        if self.explanation:
            writer(self.explanation)
        return self.explanation


class ExplanationStream:
    """An explanation that is rendered live as it arrives."""

    def __init__(self, handle: StreamHandle):
        self.handle = handle

    async def read_explanation(
        self, writer: Writer, token: Optional[CancellationToken] = None
    ) -> str:
        """
        Stream the explanation to ``writer``.

        The underlying connection is closed once the stream ends, is
        cancelled, or fails.

        Args:
            writer (Writer): Called with every fragment.
            token (Optional[CancellationToken]): Stop flag for the stream.

        Returns:
            str: The text written.
        """
        async with self.handle:
            return await read_data(self.handle, token=token)(writer)


async def _complete(client: CompletionClient, prompt: str) -> ScriptAndInfo:
    handle = await client.generate_completion(prompt, number=1)
    async with handle:
        full_response = await read_full_response(handle)
    return ScriptAndInfo(extract_script_and_explanation(full_response))


async def get_script_and_info(
    prompt: str, client: CompletionClient, builder: PromptBuilder
) -> ScriptAndInfo:
    """
    Generate a command for a natural language request.

    Args:
        prompt (str): What the command should do.
        client (CompletionClient): Client for the completion API.
        builder (PromptBuilder): Builder describing the environment.

    Returns:
        ScriptAndInfo: Script (possibly empty) and explanation.
    """
    return await _complete(client, builder.build_generation_prompt(prompt))


async def get_revision(
    prompt: str, code: str, client: CompletionClient, builder: PromptBuilder
) -> ScriptAndInfo:
    """Revise ``code`` according to ``prompt``."""
    return await _complete(client, builder.build_revision_prompt(prompt, code))


async def get_explanation(
    script: str, client: CompletionClient, builder: PromptBuilder
) -> ExplanationStream:
    handle = await client.generate_completion(
        builder.build_explanation_prompt(script), number=1
    )
    return ExplanationStream(handle)
