"""Command-line interface for batchscribe."""
