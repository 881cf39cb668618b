"""Configuration management for agentloop."""

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from agentloop.exceptions import ConfigurationError


# Paths
DEFAULT_CONFIG_PATH = Path("~/.agentloop/config.yaml").expanduser()
LOCAL_CONFIG_FILENAME = "config.yaml"


class ModelConfig(BaseModel):
    """Generation model configuration."""

    provider: str = "ollama"
    model: str = "llama3"
    base_url: str = "http://127.0.0.1:11434"
    context_window: int = 10000
    temperature: float = 0.9
    repeat_penalty: float = 1.3
    top_k: int = 20
    timeout: float = 120.0


class AgentConfig(BaseModel):
    """Run loop configuration."""

    max_iterations: int = 0
    history_window: int = 50


class PersistenceConfig(BaseModel):
    """Where to dump state snapshots and prompts. Empty means skip."""

    state_path: str = ""
    prompt_path: str = ""


class RagConfig(BaseModel):
    """Naive document retrieval configuration."""

    enabled: bool = False
    source_path: str = "./docs"
    data_path: str = "./rag-data"
    chunk_size: int | None = None
    embedding_model: str = "all-minilm"
    top_k: int = 1


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "console"
    file: str = ""


class Config(BaseSettings):
    """Main configuration for agentloop."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    rag: RagConfig = Field(default_factory=RagConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="AGENTLOOP_",
        env_file=".env",
        env_nested_delimiter="__",
    )

    @classmethod
    def resolve_default_config_path(cls) -> Path:
        """Resolve default config path with local-first precedence."""
        local_path = Path.cwd() / LOCAL_CONFIG_FILENAME
        if local_path.exists():
            return local_path
        return DEFAULT_CONFIG_PATH

    @classmethod
    def from_yaml(cls, path: Path | str | None = None) -> "Config":
        """Load configuration from YAML file."""
        config_path = Path(path).expanduser() if path else cls.resolve_default_config_path()

        if not config_path.exists():
            return cls()

        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}")

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_path} must be a mapping")

        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid config {config_path}: {e}")

    @classmethod
    def load(cls) -> "Config":
        """Load configuration from the default YAML path and the environment."""
        # AGENTLOOP_* env vars fill in whatever the YAML file leaves unset
        return cls.from_yaml()

    def save(self, path: Path | str | None = None) -> None:
        """Save configuration to YAML file."""
        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


# Global config instance
_config: Config | None = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.load()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
