"""
Configuration settings for FlowMachine.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Application
    APP_NAME: str = "FlowMachine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Flow engine
    MAX_STEPS: int = 1000  # Node executions allowed per run
    END_IS_TERMINAL: bool = False  # Stop at "end" nodes even if an edge is satisfied

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
