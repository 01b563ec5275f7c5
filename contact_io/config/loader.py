from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load YAML config (default: config/contacts.yml)
- Validate against config_schema.json (shipped next to this module)
- Apply defaults (display id CON/3, tag separator ";", ./exports, ./logs)
- Resolve the PostgreSQL DSN (environment first, then the YAML section)
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/contacts.yml")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Fallback connection settings; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None

    def resolve_dsn(self) -> str:
        """Final DSN.

        Priority:
            1. DATABASE_URL / PGDSN environment variables (whole DSN)
            2. dsn in the YAML database section
            3. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each
               falling back to the YAML value, then to libpq defaults
        """
        dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or self.dsn
        if dsn:
            return dsn
        host = os.getenv("PGHOST", self.host or "localhost")
        port = os.getenv("PGPORT", str(self.port) if self.port else "5432")
        user = os.getenv("PGUSER", self.user or "postgres")
        password = os.getenv("PGPASSWORD", self.password or "")
        database = os.getenv("PGDATABASE", self.database or "postgres")
        dsn = f"host={host} port={port} user={user} dbname={database}"
        if password:
            dsn += f" password={password}"
        return dsn


@dataclass(frozen=True)
class ImportSettings:
    """Knobs the orchestrator needs; independent of where they came from."""
    display_id_prefix: str = "CON"
    display_id_width: int = 3
    tag_separator: str = ";"


@dataclass(frozen=True)
class AppConfig:
    organization_id: str | None = None
    settings: ImportSettings = field(default_factory=ImportSettings)
    export_directory: str = "./exports"
    error_log_directory: str = "./logs"
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid, or the data fails validation
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> AppConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    did = data.get("display_id") or {}
    settings = ImportSettings(
        display_id_prefix=did.get("prefix", "CON"),
        display_id_width=did.get("width", 3),
        tag_separator=data.get("tag_separator", ";"),
    )
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    return AppConfig(
        organization_id=data.get("organization_id"),
        settings=settings,
        export_directory=data.get("export_directory", "./exports"),
        error_log_directory=data.get("error_log_directory", "./logs"),
        database=db,
    )
