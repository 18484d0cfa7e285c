"""
Command-Line Interface Layer.

Typer commands and Rich formatting for the terminal.
"""
