"""Command line entry point."""

from crossplane_broker.cli.main import build_parser, main

__all__ = ["build_parser", "main"]
