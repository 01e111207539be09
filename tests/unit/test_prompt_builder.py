"""
Unit tests for the prompt_builder module.

This module tests the generation, revision and explanation prompts and the
construction of a builder from the detected environment.
"""

from unittest.mock import MagicMock, patch

import pytest

from shellscribe.translator.prompt_builder import EXPLAIN_SCRIPT, PromptBuilder

pytestmark = pytest.mark.unit


class TestGenerationPrompt:
    """Test the prompt asking for a new command."""

    def test_contains_environment_details(self, builder, user_prompt):
        """Test that shell, OS and language are injected."""
        prompt = builder.build_generation_prompt(user_prompt)

        assert "The target shell is zsh 5.9" in prompt
        assert "Make sure the command runs on macOS 14.4." in prompt
        assert "Explain in English." in prompt

    def test_ends_with_user_request(self, builder, user_prompt):
        """Test that the user request is the last section."""
        prompt = builder.build_generation_prompt(user_prompt)

        assert prompt.endswith(f"The prompt is: {user_prompt}")

    def test_demands_a_bash_block(self, builder):
        """Test the formatting contract for the answer."""
        prompt = builder.build_generation_prompt("list files")

        assert "single line command" in prompt
        assert "```bash" in prompt
        assert "macOS-compatible" in prompt

    def test_explanation_left_to_second_request_by_default(self, builder):
        """Test that step-by-step instructions are not embedded by default."""
        assert EXPLAIN_SCRIPT not in builder.build_generation_prompt("x")

    def test_explanation_embedded_when_configured(self):
        """Test that the explanation instructions join the prompt when asked."""
        builder = PromptBuilder("bash 5.2", "Linux 6.8", explain_in_second_request=False)

        prompt = builder.build_generation_prompt("x")

        assert EXPLAIN_SCRIPT in prompt
        assert prompt.index(EXPLAIN_SCRIPT) < prompt.index("The prompt is: x")


class TestRevisionPrompt:
    """Test the prompt revising an existing command."""

    def test_contains_script_and_instruction(self, builder):
        """Test that the old script and the change request are included."""
        prompt = builder.build_revision_prompt("sort by size", "ls -la")

        assert prompt.startswith("Update the following script")
        assert "The script: ls -la" in prompt
        assert "The prompt: sort by size" in prompt
        assert "```bash" in prompt
        assert "macOS 14.4" in prompt


class TestExplanationPrompt:
    """Test the prompt asking for an explanation."""

    def test_uses_configured_language(self, builder):
        """Test the default language and the script placement."""
        prompt = builder.build_explanation_prompt("ls -la")

        assert prompt.startswith(EXPLAIN_SCRIPT)
        assert "Please reply in English" in prompt
        assert prompt.endswith("The script: ls -la")

    def test_language_override(self, builder):
        """Test that a language can be passed per call."""
        assert "Please reply in German" in builder.build_explanation_prompt(
            "ls", language="German"
        )


class TestFromEnvironment:
    """Test building a prompt builder from the environment."""

    @patch("shellscribe.executor.platform_utils.describe_os", return_value="Linux 6.8")
    @patch("shellscribe.executor.platform_utils.describe_shell", return_value="bash 5.2")
    def test_reads_platform_and_settings(self, mock_shell, mock_os):
        """Test that collaborators and settings feed the builder."""
        settings = MagicMock()
        settings.get_language_name.return_value = "French"
        settings.get.return_value = False

        builder = PromptBuilder.from_environment(settings)

        assert builder.shell_details == "bash 5.2"
        assert builder.os_details == "Linux 6.8"
        assert builder.language == "French"
        assert builder.explain_in_second_request is False
        settings.get.assert_called_once_with("ui", "explain_in_second_request", True)
