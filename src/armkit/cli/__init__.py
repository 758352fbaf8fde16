"""Command-line interface for armkit."""
