"""
Interface layer: the typer command line.
"""
