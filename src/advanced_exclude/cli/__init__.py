"""Command-line interface for advanced-exclude."""
