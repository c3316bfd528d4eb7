"""
Infrastructure layer package.

Contains all I/O:
- SQLite table store (store/)
- Excel workbook codec (excel/)
- Configuration file loading
- Logging setup
"""

from cooperativa.infrastructure.config_loader import ConfigLoader
from cooperativa.infrastructure.logging_config import setup_logging

__all__ = [
    "ConfigLoader",
    "setup_logging",
]
