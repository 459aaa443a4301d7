"""Core infrastructure layer - no business logic dependencies.

This module provides foundation-level services:
- Configuration management (TOML + .env)
- Database connection and schema (SQLite)
- Logging (loguru) and console output (Rich)

The core layer has no dependencies on the domain layer.
"""

# Configuration
from .config import (
    Config,
    load_config,
    parse_config,
    get_config_dir,
    get_config_path,
    get_data_dir,
    create_default_config,
    ensure_directories,
)

# Database
from .database import (
    get_database_path,
    get_db_connection,
    init_database,
)

# Output
from .output import log, setup_loguru

__all__ = [
    # Configuration
    "Config",
    "load_config",
    "parse_config",
    "get_config_dir",
    "get_config_path",
    "get_data_dir",
    "create_default_config",
    "ensure_directories",
    # Database
    "get_database_path",
    "get_db_connection",
    "init_database",
    # Output
    "log",
    "setup_loguru",
]
