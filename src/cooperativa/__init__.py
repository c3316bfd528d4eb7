"""
Cooperativa - data interchange and change tracking for a charity cooperative.

Architecture:
- domain/: entities, table schemas, sanitisers, configuration model
- application/: change log, repositories, snapshot engine, notifier, container
- infrastructure/: SQLite store, Excel codec, config loading, logging
- interface/: typer CLI
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
