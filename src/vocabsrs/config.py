"""Configuration settings for the scheduling engine."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))
DECKS_DIR = DATA_DIR / "decks"

# Scheduling defaults
MAX_NEW_CARDS = 20  # never-seen cards admitted into one session
INITIAL_EASE = 2.5
MIN_EASE = 1.3


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    directories = [
        DATA_DIR,
        DECKS_DIR,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR
    decks_dir: Path = DECKS_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocabsrs.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    rotation: str = os.getenv("LOG_ROTATION", "midnight")
    interval: int = int(os.getenv("LOG_INTERVAL", "1"))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "7"))


@dataclass
class SchedulingSettings:
    """Spaced repetition settings."""
    max_new_cards: int = int(os.getenv("MAX_NEW_CARDS", str(MAX_NEW_CARDS)))
    initial_ease: float = float(os.getenv("INITIAL_EASE", str(INITIAL_EASE)))
    min_ease: float = MIN_EASE


@dataclass
class MonitoringSettings:
    """Prometheus metrics settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_scheduling_settings() -> SchedulingSettings:
    """Get scheduling settings."""
    return SchedulingSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    scheduling: SchedulingSettings = field(default_factory=get_scheduling_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.database.url:
            raise ValueError("DATABASE_URL is required")

        if self.scheduling.max_new_cards < 0:
            raise ValueError("MAX_NEW_CARDS cannot be negative")

        if self.scheduling.initial_ease < self.scheduling.min_ease:
            raise ValueError(f"INITIAL_EASE must be at least {self.scheduling.min_ease}")

        if not 0 < self.monitoring.port < 65536:
            raise ValueError("METRICS_PORT must be a valid TCP port")

        if self.logging.backup_count < 0:
            raise ValueError("LOG_BACKUP_COUNT cannot be negative")


# Create global settings instance
settings = Settings()
settings.validate()
