"""Command-line interface for juggler."""
