"""
Error types for ShellScribe.

Errors raised as KnownError carry a message that is safe to show to the
user as-is; anything else is treated as unexpected by the CLI.
"""


class KnownError(Exception):
    """An expected failure with a user-facing message."""
