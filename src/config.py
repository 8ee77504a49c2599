"""Bridge configuration and process settings.

The bridge contract (method, URL pattern, broker DSN, queue name) is read from
a YAML file. Process settings (which file to read, log level) come from the
environment or a .env file via pydantic-settings.
"""

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from msg_bridge.consumer import CONSUMER_TAG, RETRY_INTERVAL
from msg_bridge.models import HttpMethod
from msg_bridge.pool import DEFAULT_MAX_SIZE

DEFAULT_CONFIG_FILE = "./indexer.yml"


class ConfigError(Exception):
    """The configuration file could not be read or deserialized."""


class Config(BaseModel):
    """Bridge configuration; fixed for the process lifetime."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    method: HttpMethod = Field(..., description="GET or POST; anything else means GET")
    pattern: str = Field(..., description="URL pattern with <Key> placeholders")
    queue_host: str = Field(..., alias="queueDSN", description="AMQP URI of the broker")
    queue_name: str = Field(..., alias="queueName", description="Queue to consume from")
    build_env: str = Field(..., alias="buildEnv", description="Deployment environment tag")
    http_timeout: float | None = Field(None, alias="httpTimeout", description="HTTP timeout in seconds")
    retry_interval: float = Field(RETRY_INTERVAL, alias="retryInterval", description="Seconds between reconnects")
    pool_size: int = Field(DEFAULT_MAX_SIZE, alias="poolSize", ge=1, description="Broker connection pool capacity")
    consumer_tag: str = Field(CONSUMER_TAG, alias="consumerTag", description="AMQP consumer tag")

    @field_validator("method", mode="before")
    @classmethod
    def _lenient_method(cls, value):
        return HttpMethod.parse(value)

    @classmethod
    def parse_from_file(cls, fname: str | Path) -> "Config":
        """Load the configuration from a YAML file.

        Raises:
            ConfigError: If the file cannot be read or its content is invalid.
        """
        try:
            data = Path(fname).read_text()
        except OSError as err:
            raise ConfigError("could not open config file") from err

        try:
            raw = yaml.safe_load(data)
            if not isinstance(raw, dict):
                raise ConfigError("could not deserialize config")
            return cls.model_validate(raw)
        except (yaml.YAMLError, ValidationError) as err:
            raise ConfigError("could not deserialize config") from err


class Settings(BaseSettings):
    """Runtime settings for the bridge process (config file location, log level)."""

    model_config = SettingsConfigDict(env_prefix="BRIDGE_", env_file=".env", extra="ignore")

    config_file: str = Field(default=DEFAULT_CONFIG_FILE)
    log_level: str = Field(default="INFO")


def get_settings() -> Settings:
    """Return the loaded settings instance."""
    return Settings()
