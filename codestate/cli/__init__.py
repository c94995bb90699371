"""Command-line interface for codestate."""
