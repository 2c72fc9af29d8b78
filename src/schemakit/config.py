from dotenv import load_dotenv
from dataclasses import dataclass
from pathlib import Path
import json
import os

import yaml

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    DATABASE_URL = os.getenv("SCHEMAKIT_DATABASE_URL", "sqlite:///schemakit.db")  # Default to SQLite
    DB_BACKEND = os.getenv("SCHEMAKIT_DB_BACKEND", "local")
    LOG_LEVEL = os.getenv("SCHEMAKIT_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("SCHEMAKIT_LOG_FILE")


settings = Settings()


@dataclass
class MapperConfig:
    """Configurable values for schema building and conflict handling."""

    # ImageObject dimensions used when the attachment size is unknown
    default_image_width: int = 1200
    default_image_height: int = 800

    # aggregateRating bounds (ratingValue must be > min and <= max)
    rating_min: float = 0.0
    rating_max: float = 5.0

    # Conflicts are kept for the admin screen this long (seconds)
    conflict_ttl_seconds: int = 3600

    # Drop conflicting schemas instead of only recording the conflict
    prevent_conflicting_output: bool = True

    @classmethod
    def from_env(cls) -> "MapperConfig":
        """Load configuration from environment variables.

        Environment variables should be prefixed with SCHEMAKIT_
        e.g., SCHEMAKIT_DEFAULT_IMAGE_WIDTH=1600

        Returns:
            MapperConfig with values from environment
        """
        config = cls()
        prefix = "SCHEMAKIT_"

        for field_name in config.__dataclass_fields__:
            env_key = f"{prefix}{field_name.upper()}"
            env_value = os.getenv(env_key)

            if env_value is not None:
                field_type = config.__dataclass_fields__[field_name].type
                try:
                    if field_type in (bool, 'bool'):
                        setattr(config, field_name, env_value.strip().lower() in ('1', 'true', 'yes', 'on'))
                    elif field_type in (int, 'int'):
                        setattr(config, field_name, int(env_value))
                    elif field_type in (float, 'float'):
                        setattr(config, field_name, float(env_value))
                except ValueError:
                    pass  # Keep default if conversion fails

        return config

    @classmethod
    def from_file(cls, path: str) -> "MapperConfig":
        """Load configuration from a JSON or YAML file.

        Args:
            path: Path to configuration file

        Returns:
            MapperConfig with values from file
        """
        config = cls()
        file_path = Path(path)

        if not file_path.exists():
            return config

        data = load_data_file(file_path)
        mapper_config = data.get('mapper', data)

        for field_name in config.__dataclass_fields__:
            if field_name in mapper_config:
                setattr(config, field_name, mapper_config[field_name])

        return config

    def to_dict(self) -> dict:
        """Convert configuration to dictionary."""
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }

    def save_to_file(self, path: str) -> None:
        """Save current configuration to a JSON file.

        Args:
            path: Path to save configuration
        """
        with open(path, 'w') as f:
            json.dump({'mapper': self.to_dict()}, f, indent=2)


def load_data_file(path) -> dict:
    """Read a JSON or YAML file into a dict.

    YAML is used for .yml/.yaml extensions, JSON for everything else.
    """
    file_path = Path(path)
    with open(file_path, 'r', encoding='utf-8') as f:
        if file_path.suffix.lower() in ('.yml', '.yaml'):
            return yaml.safe_load(f) or {}
        return json.load(f)


# Global default configuration instance
default_config = MapperConfig()
