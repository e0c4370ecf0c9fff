"""Command-line interface for codechat."""
