"""Typer command line for running the gateway and talking to it."""
