"""
Main entry point for running ShellScribe as a module.

This allows the package to be executed directly with:
python -m shellscribe
"""

from shellscribe.main import app


def main() -> None:
    """Run the ShellScribe CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
