"""ShellScribe: natural language to shell commands."""
