"""Command-line interface for ssoctl."""
