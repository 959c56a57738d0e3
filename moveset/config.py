"""Environment-variable defaults for the CLI."""

import os

DEFAULT_DB_PATH = "data/moveset.duckdb"
DEFAULT_CATALOG_DIR = "data"
DEFAULT_LOG_DIR = "logs/moveset"


def db_path() -> str:
    return os.getenv("MOVESET_DB", DEFAULT_DB_PATH)


def catalog_dir() -> str:
    return os.getenv("MOVESET_CATALOG_DIR", DEFAULT_CATALOG_DIR)


def log_dir() -> str:
    return os.getenv("MOVESET_LOG_DIR", DEFAULT_LOG_DIR)
