"""
Configuration settings for the Workflow Engine.
"""

from pydantic_settings import BaseSettings
from typing import TYPE_CHECKING, Literal, Optional

if TYPE_CHECKING:
    from pausegraph.persistence.base import WorkflowPersistence


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "PauseGraph"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Workflow Engine
    MAX_STEPS_MULTIPLIER: int = 10  # Step ceiling = node count x this
    MERMAID_DIRECTION: str = "TD"

    # Persistence
    PERSISTENCE_BACKEND: Literal["memory", "file"] = "memory"
    PERSISTENCE_DIR: str = ".pausegraph/suspended"

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


def create_persistence(config: Optional[Settings] = None) -> "WorkflowPersistence":
    """Build the persistence backend selected by ``PERSISTENCE_BACKEND``."""
    from pausegraph.persistence import FileWorkflowPersistence, InMemoryWorkflowPersistence

    config = config or settings
    backend = config.PERSISTENCE_BACKEND
    if backend == "memory":
        return InMemoryWorkflowPersistence()
    if backend == "file":
        return FileWorkflowPersistence(config.PERSISTENCE_DIR)
    raise ValueError(
        f"Unknown PERSISTENCE_BACKEND '{config.PERSISTENCE_BACKEND}'; expected 'memory' or 'file'"
    )


# Global settings instance
settings = Settings()
