# ==============================================
# Configuration Management
# ==============================================
#
# PURPOSE:
#   Load and validate all run configuration from environment
#   variables / .env file. Provides typed config objects
#   to all other modules.
#
# CLASSES:
# --------
# - MigrationMode (Enum)
#     GENERATE_TABLES ("generate-tables") | EXISTING_TABLES ("existing-tables")
#
# - MongoConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 27017)
#     user: str | None   (default None)
#     password: str | None (default None)
#     database: str      (default "source_db")
#     uri: str | None    (default None, overrides host/port/user/password)
#
# - MySQLConfig (dataclass)
#     host: str          (default "localhost")
#     port: int          (default 3306)
#     user: str          (default "root")
#     password: str      (default "root")
#     database: str      (default "target_db")
#
# - AdvisorConfig (dataclass)
#     api_key: str | None        (default None → advisor disabled)
#     model: str                 (default "gpt-4o-mini")
#     base_url: str              (default "https://api.openai.com/v1")
#     timeout_seconds: float     (default 30.0)
#
# - MigrationSettings (dataclass)
#     mode: MigrationMode        (default GENERATE_TABLES)
#     schema_script: str | None  (default None)
#     batch_size: int            (default 1000)
#     sample_size: int           (default 100)
#     log_level: str             (default "INFO")
#     collections: list | None   (default None → every collection)
#
# - AppConfig (dataclass)
#     mongo, mysql, advisor, migration
#
# FUNCTIONS:
# ----------
# - get_config() -> AppConfig
#     Load .env using python-dotenv, construct AppConfig.
#     Returns the same singleton on repeated calls.
#
# - reset_config() -> None
#     Forget the cached singleton.
#
# USAGE:
# ------
#   from docmigrate.config import get_config
#   config = get_config()
#   print(config.mongo.connection_uri)
#   print(config.migration.batch_size)
#
# ==============================================

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional
from urllib.parse import quote_plus

from dotenv import load_dotenv

from docmigrate.exceptions import ConfigurationError


class MigrationMode(Enum):
    """
    How destination tables are obtained.

    - GENERATE_TABLES: tables are created from the inferred (or advised) schema
    - EXISTING_TABLES: tables already exist; source fields are mapped onto them
    """
    GENERATE_TABLES = "generate-tables"
    EXISTING_TABLES = "existing-tables"

    @classmethod
    def parse(cls, value) -> "MigrationMode":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        aliases = {
            "auto-tables": cls.GENERATE_TABLES,
            "pre-existing": cls.EXISTING_TABLES,
        }
        if text in aliases:
            return aliases[text]
        try:
            return cls(text)
        except ValueError:
            raise ConfigurationError(
                f"Unknown migration mode '{value}'. "
                f"Expected one of: {', '.join(m.value for m in cls)}"
            )


@dataclass
class MongoConfig:
    """MongoDB (source) configuration."""
    host: str = "localhost"
    port: int = 27017
    user: Optional[str] = None
    password: Optional[str] = None
    database: str = "source_db"
    uri: Optional[str] = None

    @property
    def connection_uri(self) -> str:
        if self.uri:
            return self.uri
        if self.user and self.password:
            credentials = f"{quote_plus(self.user)}:{quote_plus(self.password)}@"
        else:
            credentials = ""
        return f"mongodb://{credentials}{self.host}:{self.port}/{self.database}"


@dataclass
class MySQLConfig:
    """MySQL (destination) configuration."""
    host: str = "localhost"
    port: int = 3306
    user: str = "root"
    password: str = "root"
    database: str = "target_db"


@dataclass
class AdvisorConfig:
    """Optional schema/mapping advisor configuration."""
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    base_url: str = "https://api.openai.com/v1"
    timeout_seconds: float = 30.0

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)


@dataclass
class MigrationSettings:
    """Settings for a single migration run."""
    mode: MigrationMode = MigrationMode.GENERATE_TABLES
    schema_script: Optional[str] = None
    batch_size: int = 1000
    sample_size: int = 100
    log_level: str = "INFO"
    collections: Optional[List[str]] = None

    def __post_init__(self):
        self.mode = MigrationMode.parse(self.mode)
        if self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.sample_size < 1:
            raise ConfigurationError(f"sample_size must be at least 1, got {self.sample_size}")


@dataclass
class AppConfig:
    """Main application configuration."""
    mongo: MongoConfig = field(default_factory=MongoConfig)
    mysql: MySQLConfig = field(default_factory=MySQLConfig)
    advisor: AdvisorConfig = field(default_factory=AdvisorConfig)
    migration: MigrationSettings = field(default_factory=MigrationSettings)


# Singleton instance
_config_instance: Optional[AppConfig] = None


def _parse_int(name: str, default: str) -> int:
    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got '{raw}'")


def _parse_float(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'")


def _parse_list(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or None


def get_config() -> AppConfig:
    """
    Load configuration from environment variables / .env file.
    Returns the same singleton instance on repeated calls.

    Returns:
        AppConfig: Application configuration
    """
    global _config_instance

    if _config_instance is not None:
        return _config_instance

    # Load .env file from project root
    env_path = Path(__file__).parent.parent / ".env"
    load_dotenv(dotenv_path=env_path)

    mongo_config = MongoConfig(
        host=os.getenv("MONGO_HOST", "localhost"),
        port=_parse_int("MONGO_PORT", "27017"),
        user=os.getenv("MONGO_USER") or None,
        password=os.getenv("MONGO_PASSWORD") or None,
        database=os.getenv("MONGO_DATABASE", "source_db"),
        uri=os.getenv("MONGO_URI") or None,
    )

    mysql_config = MySQLConfig(
        host=os.getenv("MYSQL_HOST", "localhost"),
        port=_parse_int("MYSQL_PORT", "3306"),
        user=os.getenv("MYSQL_USER", "root"),
        password=os.getenv("MYSQL_PASSWORD", "root"),
        database=os.getenv("MYSQL_DATABASE", "target_db"),
    )

    advisor_config = AdvisorConfig(
        api_key=os.getenv("OPENAI_API_KEY") or None,
        model=os.getenv("ADVISOR_MODEL", "gpt-4o-mini"),
        base_url=os.getenv("ADVISOR_BASE_URL", "https://api.openai.com/v1"),
        timeout_seconds=_parse_float("ADVISOR_TIMEOUT_SECONDS", "30.0"),
    )

    migration_settings = MigrationSettings(
        mode=os.getenv("MIGRATION_MODE", MigrationMode.GENERATE_TABLES.value),
        schema_script=os.getenv("SCHEMA_SCRIPT") or None,
        batch_size=_parse_int("BATCH_SIZE", "1000"),
        sample_size=_parse_int("SAMPLE_SIZE", "100"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        collections=_parse_list(os.getenv("COLLECTIONS")),
    )

    _config_instance = AppConfig(
        mongo=mongo_config,
        mysql=mysql_config,
        advisor=advisor_config,
        migration=migration_settings,
    )

    return _config_instance


def reset_config() -> None:
    """Forget the cached configuration so the next get_config() reloads it."""
    global _config_instance
    _config_instance = None
