"""Typer command-line interface (`khaata ...`)."""
