"""
Prompt builder for ShellScribe.

This module builds the prompts sent to the chat completion API for
generating, revising and explaining shell scripts. Shell, operating system
and language details are injected as plain strings; the builder never
inspects the environment itself.
"""

from textwrap import dedent
from typing import Optional

EXPLAIN_SCRIPT = (
    "Please provide a clear, concise description of the script, using minimal "
    "words. Outline the steps in a list format."
)


class PromptBuilder:
    """
    Builder for the generation, revision and explanation prompts.

    The explanation can either be requested together with the command or in
    a follow-up request; ``explain_in_second_request`` selects which.
    """

    def __init__(
        self,
        shell_details: str,
        os_details: str,
        language: str = "English",
        explain_in_second_request: bool = True,
    ):
        """
        Initialize the prompt builder.

        Args:
            shell_details (str): Description of the target shell.
            os_details (str): Description of the target operating system.
            language (str): Display name of the language for explanations.
            explain_in_second_request (bool): Leave the step-by-step
                explanation to a second request instead of this prompt.
        """
        self.shell_details = shell_details
        self.os_details = os_details
        self.language = language
        self.explain_in_second_request = explain_in_second_request

    @classmethod
    def from_environment(cls, settings=None) -> "PromptBuilder":
        """
        Create a builder from the detected platform and user settings.

        Args:
            settings (Optional[Settings]): Settings to read; defaults to the
                global settings instance.

        Returns:
            PromptBuilder: A builder for the current environment.
        """
        from shellscribe.config.settings import settings as global_settings
        from shellscribe.executor import platform_utils

        settings = settings or global_settings
        return cls(
            shell_details=platform_utils.describe_shell(),
            os_details=platform_utils.describe_os(),
            language=settings.get_language_name(),
            explain_in_second_request=settings.get(
                "ui", "explain_in_second_request", True
            ),
        )

    def _generation_details(self) -> str:
        return dedent(
            f"""\
            Reply with two parts:
            1. The command inside a markdown code block (format: ```bash\\nyour command here\\n```)
            2. A brief explanation of what the command does

            Example:
            ```bash
            your command here
            ```
            Explanation text here.

            **IMPORTANT**: Use macOS-compatible syntax (prefer short options like `-r` over `--reverse`). Mention in explanation if command differs between macOS/Linux (if same, don't mention).

            Make sure the command runs on {self.os_details}.

            **Language**: Explain in {self.language}."""
        )

    def build_generation_prompt(self, prompt: str) -> str:
        """
        Build the prompt that turns a request into a single-line command.

        Args:
            prompt (str): The user's natural language request.

        Returns:
            str: The full prompt.
        """
        sections = [
            "Create a single line command that one can enter in a terminal and "
            "run, based on what is specified in the prompt.",
            f"The target shell is {self.shell_details}",
            self._generation_details(),
        ]
        if not self.explain_in_second_request:
            sections.append(EXPLAIN_SCRIPT)
        sections.append(f"The prompt is: {prompt}")
        return "\n\n".join(sections)

    def build_revision_prompt(self, prompt: str, code: str) -> str:
        """
        Build the prompt that revises an existing script.

        Args:
            prompt (str): What should change.
            code (str): The script to update.

        Returns:
            str: The full prompt.
        """
        return "\n\n".join(
            [
                "Update the following script based on what is asked in the "
                "following prompt.",
                f"The script: {code}",
                f"The prompt: {prompt}",
                self._generation_details(),
            ]
        )

    def build_explanation_prompt(self, script: str, language: Optional[str] = None) -> str:
        """Build the prompt asking for a step list describing ``script``."""
        language = language or self.language
        return f"{EXPLAIN_SCRIPT} Please reply in {language}\n\nThe script: {script}"
