"""Taskweave command line interface."""

from taskweave.cli.main import app, main

__all__ = ["app", "main"]
