"""
Unit tests for the completion module.

This module tests the script generation pipeline:
- Accumulating a full streamed response
- Splitting responses into script and explanation
- Generation, revision and live explanation over a mock transport
"""

import json
from unittest.mock import patch

import pytest

from shellscribe.models.command_models import ScriptExplanationPair
from shellscribe.translator.completion import (
    ScriptAndInfo,
    extract_script_and_explanation,
    get_explanation,
    get_revision,
    get_script_and_info,
    read_full_response,
)
from shellscribe.ui.keypress import CancellationToken, KeypressListener

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def no_terminal():
    """Keep the key listener away from the real terminal."""
    with patch.object(KeypressListener, "_is_terminal", return_value=False):
        yield


class TestReadFullResponse:
    """Test accumulation of streamed content."""

    async def test_concatenates_deltas(self, recording_stream, sse_event, done_event):
        """Test that deltas are joined in arrival order."""
        stream = recording_stream(
            [sse_event("```bash\n"), sse_event("ls"), sse_event("\n```"), done_event]
        )

        assert await read_full_response(stream) == "```bash\nls\n```"

    async def test_stops_at_done(self, recording_stream, sse_event, done_event):
        """Test that chunks after the sentinel are not read."""
        stream = recording_stream([sse_event("a") + done_event, sse_event("b")])

        assert await read_full_response(stream) == "a"
        assert stream.consumed == 1

    async def test_non_text_delta_does_not_abort(
        self, recording_stream, sse_event, done_event
    ):
        """Test that a numeric content field is skipped instead of failing the read."""
        odd = 'data: {"choices": [{"delta": {"content": 5}}]}\n\n'
        stream = recording_stream([sse_event("a"), odd, sse_event("b"), done_event])

        assert await read_full_response(stream) == "ab"

    async def test_empty_stream(self, recording_stream, done_event):
        """Test that a stream with only the sentinel gives an empty string."""
        assert await read_full_response(recording_stream([done_event])) == ""


class TestExtractScriptAndExplanation:
    """Test splitting a response into script and explanation."""

    def test_bash_block_with_explanation(self):
        """Test the common response shape."""
        pair = extract_script_and_explanation("```bash\nECHO 1\n```\nPrints 1.")

        assert pair == ScriptExplanationPair(script="ECHO 1", explanation="Prints 1.")
        assert pair.has_script

    def test_no_code_block(self):
        """Test that a refusal becomes the explanation with an empty script."""
        pair = extract_script_and_explanation("I cannot help with that.")

        assert pair.script == ""
        assert pair.explanation == "I cannot help with that."
        assert not pair.has_script

    def test_only_first_block_counts(self):
        """Test that later blocks stay in the explanation."""
        text = "```bash\nls\n```\nOr use:\n```bash\nfind .\n```"

        pair = extract_script_and_explanation(text)

        assert pair.script == "ls"
        assert "find ." in pair.explanation

    @pytest.mark.parametrize("tag", ["sh", "", "BASH"])
    def test_other_block_tags(self, tag):
        """Test sh, untagged and upper case fences."""
        pair = extract_script_and_explanation(f"```{tag}\npwd\n```\nShows the directory.")

        assert pair.script == "pwd"
        assert pair.explanation == "Shows the directory."

    def test_text_before_block_is_kept(self):
        """Test that a preamble is part of the explanation."""
        pair = extract_script_and_explanation("Here you go:\n```bash\nls\n```\nLists.")

        assert pair.script == "ls"
        assert pair.explanation.startswith("Here you go:")
        assert pair.explanation.endswith("Lists.")

    def test_multiline_script(self):
        """Test that a multi-line block is kept whole."""
        pair = extract_script_and_explanation("```bash\ncd /tmp\nls\n```")

        assert pair.script == "cd /tmp\nls"
        assert pair.explanation == ""


class TestScriptAndInfo:
    """Test writing a finished result."""

    def test_writers_receive_script_and_explanation(self):
        """Test that each reader writes its text once and returns it."""
        result = ScriptAndInfo(ScriptExplanationPair(script="ls", explanation="Lists."))
        written = []

        assert result.read_script(written.append) == "ls"
        assert result.read_info(written.append) == "Lists."
        assert written == ["ls", "Lists."]

    def test_empty_parts_are_not_written(self):
        """Test that empty text is never handed to the writer."""
        result = ScriptAndInfo(ScriptExplanationPair())
        written = []

        result.read_script(written.append)
        result.read_info(written.append)

        assert written == []


class TestPipeline:
    """Test generation, revision and explanation end to end over HTTP."""

    async def test_get_script_and_info(self, make_client, sse_response, builder):
        """Test that the generation prompt is sent and the reply split."""
        sent = []

        def handler(request):
            sent.append(json.loads(request.content))
            return sse_response("```bash\n", "ls -la", "\n```\n", "Lists all files.")

        result = await get_script_and_info("list files", make_client(handler), builder)

        assert result.script == "ls -la"
        assert result.explanation == "Lists all files."
        prompt = sent[0]["messages"][0]["content"]
        assert prompt == builder.build_generation_prompt("list files")
        assert sent[0]["n"] == 1

    async def test_get_revision(self, make_client, sse_response, builder):
        """Test that the revision prompt carries the old script."""
        sent = []

        def handler(request):
            sent.append(json.loads(request.content))
            return sse_response("```bash\nls -lah\n```\nHuman readable sizes.")

        result = await get_revision("human sizes", "ls -la", make_client(handler), builder)

        assert result.script == "ls -lah"
        prompt = sent[0]["messages"][0]["content"]
        assert "The script: ls -la" in prompt
        assert "The prompt: human sizes" in prompt

    async def test_get_explanation_streams(self, make_client, sse_response, builder):
        """Test that the explanation is streamed fragment by fragment."""
        sent = []

        def handler(request):
            sent.append(json.loads(request.content))
            return sse_response("1. Lists", " files\n", "2. Done")

        stream = await get_explanation("ls", make_client(handler), builder)
        written = []
        text = await stream.read_explanation(written.append)

        assert written == ["1. Lists", " files\n", "2. Done"]
        assert text == "1. Lists files\n2. Done"
        assert sent[0]["messages"][0]["content"] == builder.build_explanation_prompt("ls")
        assert stream.handle.response.is_closed

    async def test_cancelled_explanation_closes_stream(
        self, make_client, sse_response, builder
    ):
        """Test that cancelling mid-stream stops output and releases the connection."""
        client = make_client(lambda request: sse_response("a", "b", "c"))
        token = CancellationToken()
        written = []

        def writer(text):
            written.append(text)
            token.cancel()

        stream = await get_explanation("ls", client, builder)
        text = await stream.read_explanation(writer, token=token)

        assert text == "a"
        assert written == ["a"]
        assert stream.handle.response.is_closed
