"""Command-line interface for ucan-inspect."""
