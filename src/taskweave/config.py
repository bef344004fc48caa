"""Configuration management for the Taskweave engine."""

from typing import Literal

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from taskweave.models import WorkflowType


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TASKWEAVE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server configuration
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Runtime environment (development, staging, production)",
    )
    server_host: str = Field(default="localhost", description="Server bind host")
    server_port: int = Field(default=3340, description="Server bind port")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # PostgreSQL configuration
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_port: int = Field(default=5432, description="PostgreSQL port")
    postgres_user: str = Field(default="taskweave", description="PostgreSQL user")
    postgres_password: SecretStr = Field(
        default=SecretStr("taskweave_dev"),
        description="PostgreSQL password",
    )
    postgres_db: str = Field(default="taskweave", description="PostgreSQL database name")
    database_dsn: str = Field(
        default="",
        description="Full SQLAlchemy async URL (overrides the postgres_* fields)",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")

    # Hierarchy limits
    default_tree_depth: int = Field(
        default=5,
        ge=0,
        description="Depth bound used by task tree rendering when none is given",
    )
    max_hierarchy_depth: int = Field(
        default=10,
        ge=1,
        description="Hard limit on a task's distance from its root ancestor",
    )
    ancestor_walk_limit: int = Field(
        default=20,
        ge=1,
        description="Maximum parent hops followed when computing depth",
    )

    # Workflow
    default_workflow: WorkflowType = Field(
        default=WorkflowType.BASIC,
        description="Workflow applied to tasks that do not belong to a project",
    )
    enforce_blocking_on_start: bool = Field(
        default=True,
        description="Refuse to move a blocked task into IN_PROGRESS",
    )

    @model_validator(mode="after")
    def validate_limits(self) -> "Settings":
        """Keep the display depth within the hierarchy bound."""
        if self.default_tree_depth > self.max_hierarchy_depth:
            raise ValueError(
                f"default_tree_depth ({self.default_tree_depth}) cannot exceed "
                f"max_hierarchy_depth ({self.max_hierarchy_depth})"
            )
        if self.ancestor_walk_limit < self.max_hierarchy_depth:
            raise ValueError("ancestor_walk_limit must be at least max_hierarchy_depth")
        return self

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Prevent insecure settings in production."""
        if self.environment == "production":
            if self.database_echo:
                raise ValueError("database_echo is forbidden in production (leaks query data)")
            if self.postgres_password.get_secret_value() == "taskweave_dev":
                raise ValueError(
                    "CRITICAL: Default PostgreSQL password is forbidden in production. "
                    "Set TASKWEAVE_POSTGRES_PASSWORD to a secure value."
                )
        return self

    @property
    def database_url(self) -> str:
        """Async SQLAlchemy URL for the task store."""
        if self.database_dsn:
            return self.database_dsn
        password = self.postgres_password.get_secret_value()
        return f"postgresql+asyncpg://{self.postgres_user}:{password}@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"


# Global settings instance
settings = Settings()
