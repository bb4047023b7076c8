"""
Configuration for the knowledge graph core.

Settings are loaded from environment variables (a .env file is honoured)
or from a YAML file with one section per sub-config:

    backend: neo4j
    max_key_findings: 5
    neo4j:
      uri: bolt://localhost:7687
      username: neo4j
    reasoning:
      model: claude-haiku-4-5
"""

import os
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load environment variables
load_dotenv()


class GraphBackend(Enum):
    """Graph storage backend options."""

    NEO4J = "neo4j"  # Neo4j graph database (production)
    MEMORY = "memory"  # In-process store (development/testing)


@dataclass
class Neo4jConfig:
    """Neo4j database configuration."""

    uri: str = "bolt://localhost:7687"
    username: str = "neo4j"
    password: str = ""  # Load from environment
    database: str = "neo4j"

    # Connection settings
    max_connection_lifetime: int = 3600  # seconds
    max_connection_pool_size: int = 50
    connection_timeout: int = 30  # seconds

    # Schema settings
    create_constraints: bool = True  # Uniqueness constraints on dedup keys

    # Retries apply to schema/admin statements only, never to batches or reads
    max_retries: int = 3

    def __post_init__(self) -> None:
        if self.max_connection_pool_size < 1:
            raise ConfigurationError(
                f"max_connection_pool_size must be >= 1, got {self.max_connection_pool_size}"
            )
        if self.connection_timeout < 1:
            raise ConfigurationError(
                f"connection_timeout must be >= 1, got {self.connection_timeout}"
            )
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.max_retries}")

    @classmethod
    def from_env(cls) -> "Neo4jConfig":
        """Load Neo4j config from environment variables."""
        return cls(
            uri=os.getenv("NEO4J_URI", "bolt://localhost:7687"),
            username=os.getenv("NEO4J_USERNAME", "neo4j"),
            password=os.getenv("NEO4J_PASSWORD", ""),
            database=os.getenv("NEO4J_DATABASE", "neo4j"),
            create_constraints=os.getenv("NEO4J_CREATE_CONSTRAINTS", "true").lower() == "true",
        )


@dataclass
class ReasoningConfig:
    """
    Configuration for the reasoning capability that writes report analyses.

    Temperature 0.3 keeps the analysis focused on the supplied rows.
    """

    provider: str = "anthropic"
    model: str = "claude-haiku-4-5"
    api_key: Optional[str] = None
    temperature: float = 0.3
    max_tokens: int = 1024
    max_retries: int = 3
    retry_delay: float = 1.0  # seconds, doubled per attempt

    def __post_init__(self) -> None:
        if not (0.0 <= self.temperature <= 1.0):
            raise ConfigurationError(f"temperature must be in [0.0, 1.0], got {self.temperature}")
        if self.max_tokens < 1:
            raise ConfigurationError(f"max_tokens must be >= 1, got {self.max_tokens}")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ConfigurationError(f"retry_delay must be >= 0, got {self.retry_delay}")

    @classmethod
    def from_env(cls) -> "ReasoningConfig":
        return cls(
            provider=os.getenv("KG_REASONING_PROVIDER", "anthropic").lower(),
            model=os.getenv("KG_REASONING_MODEL", "claude-haiku-4-5"),
            api_key=os.getenv("ANTHROPIC_API_KEY"),
        )


@dataclass
class KnowledgeGraphConfig:
    """
    Complete configuration for the knowledge graph core.

    Usage:
        # From environment (.env honoured)
        config = KnowledgeGraphConfig.from_env()
        config.validate()

        # In-memory development setup
        config = KnowledgeGraphConfig(backend=GraphBackend.MEMORY)
    """

    backend: GraphBackend = GraphBackend.NEO4J
    neo4j: Optional[Neo4jConfig] = field(default_factory=Neo4jConfig)
    reasoning: ReasoningConfig = field(default_factory=ReasoningConfig)

    # Insight assembly
    max_key_findings: int = 5

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        """Validate configuration on construction."""
        if isinstance(self.backend, str):
            self.backend = _parse_backend(self.backend)
        if self.max_key_findings < 0:
            raise ConfigurationError(
                f"max_key_findings must be >= 0, got {self.max_key_findings}"
            )
        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ConfigurationError(f"Unknown log_level: {self.log_level}")

    @classmethod
    def from_env(cls) -> "KnowledgeGraphConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            KG_BACKEND: Graph backend (neo4j, memory)
            NEO4J_URI / NEO4J_USERNAME / NEO4J_PASSWORD / NEO4J_DATABASE
            KG_REASONING_PROVIDER: Reasoning provider (anthropic)
            KG_REASONING_MODEL: Model used for report analysis
            ANTHROPIC_API_KEY: API key for Claude
            KG_MAX_KEY_FINDINGS: Max key findings per report
            KG_LOG_LEVEL / KG_LOG_FILE: Logging setup
        """
        backend = _parse_backend(os.getenv("KG_BACKEND", "neo4j"))
        try:
            max_key_findings = int(os.getenv("KG_MAX_KEY_FINDINGS", "5"))
        except ValueError as e:
            raise ConfigurationError("KG_MAX_KEY_FINDINGS must be an integer", cause=e) from e

        return cls(
            backend=backend,
            neo4j=Neo4jConfig.from_env() if backend == GraphBackend.NEO4J else None,
            reasoning=ReasoningConfig.from_env(),
            max_key_findings=max_key_findings,
            log_level=os.getenv("KG_LOG_LEVEL", "INFO"),
            log_file=os.getenv("KG_LOG_FILE") or None,
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "KnowledgeGraphConfig":
        """
        Load configuration from a YAML file.

        Secrets missing from the file (Neo4j password, API key) are taken
        from the environment.
        """
        try:
            with open(yaml_path, "r") as f:
                config_dict = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read config file {yaml_path}", cause=e) from e

        try:
            neo4j = Neo4jConfig(**config_dict.pop("neo4j", {}) or {})
            reasoning = ReasoningConfig(**config_dict.pop("reasoning", {}) or {})
            config = cls(neo4j=neo4j, reasoning=reasoning, **config_dict)
        except TypeError as e:
            raise ConfigurationError(f"Invalid config file {yaml_path}: {e}", cause=e) from e

        if config.neo4j is not None and not config.neo4j.password:
            config.neo4j.password = os.getenv("NEO4J_PASSWORD", "")
        if not config.reasoning.api_key:
            config.reasoning.api_key = os.getenv("ANTHROPIC_API_KEY")
        return config

    def to_yaml(self, yaml_path: str) -> None:
        """Save configuration to YAML (secrets are not written)."""
        config_dict = {
            "backend": self.backend.value,
            "max_key_findings": self.max_key_findings,
            "log_level": self.log_level,
            "log_file": self.log_file,
            "reasoning": {k: v for k, v in asdict(self.reasoning).items() if k != "api_key"},
        }
        if self.neo4j is not None:
            config_dict["neo4j"] = {k: v for k, v in asdict(self.neo4j).items() if k != "password"}

        with open(yaml_path, "w") as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)

    def validate(self) -> None:
        """Validate cross-field requirements."""
        if self.backend == GraphBackend.NEO4J and self.neo4j is None:
            raise ConfigurationError("neo4j config required when backend is neo4j")

        if self.reasoning.provider == "anthropic" and not self.reasoning.api_key:
            raise ConfigurationError("ANTHROPIC_API_KEY required for anthropic provider")

        if self.reasoning.provider != "anthropic":
            raise ConfigurationError(f"Unsupported reasoning provider: {self.reasoning.provider}")


def _parse_backend(value: str) -> GraphBackend:
    try:
        return GraphBackend(value.lower())
    except ValueError as e:
        valid = ", ".join(b.value for b in GraphBackend)
        raise ConfigurationError(f"Unknown graph backend '{value}' (expected: {valid})", cause=e) from e
