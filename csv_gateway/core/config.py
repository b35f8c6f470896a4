from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from csv_gateway.core.errors import ConfigError
from csv_gateway.core.schemas import GatewayConfig


class Settings(BaseSettings):
    CONFIG_FILE: Optional[str] = None
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"
    # Rows buffered before a chunk is handed to the response
    CSV_FLUSH_ROWS: int = 100

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Create a single instance of the settings to use everywhere
settings = Settings()


def load_config(path: Union[str, Path]) -> GatewayConfig:
    """
    Read the YAML configuration file and validate it.

    Args:
        path: Location of the YAML file.

    Returns:
        The validated, immutable GatewayConfig.

    Raises:
        ConfigError: the file is missing, is not valid YAML or does not
            match the expected layout.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as error:
        raise ConfigError(f"Error opening configuration file: {error}") from error
    except yaml.YAMLError as error:
        raise ConfigError(f"Error decoding configuration file: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError(f"Error decoding configuration file: {path} is empty")

    try:
        return GatewayConfig.model_validate(data)
    except ValidationError as error:
        raise ConfigError(f"Error decoding configuration file: {error}") from error


def resolve_config_path(cli_path: Optional[str] = None) -> str:
    """CLI argument wins over the CONFIG_FILE setting."""
    config_file = cli_path or settings.CONFIG_FILE
    if not config_file:
        raise ConfigError("Configuration file not specified.")
    return config_file
