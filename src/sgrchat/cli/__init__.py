"""Command-line interface for sgrchat."""
