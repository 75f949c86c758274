"""
Registry configuration management for medconsent
Storage backend, token authentication and audit chain settings
"""

from typing import Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator

from .constants import HistoryChainDefaults


class RegistryConfig(BaseSettings):
    """Consent registry configuration settings"""

    # Storage settings
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy URL for the registry store; in-memory when unset"
    )

    # Event settings
    event_topic: str = Field(default="consent", description="Leading topic for published events")

    # Token authentication settings
    jwt_secret: str = Field(default="medconsent-development-secret-change-me")
    jwt_algorithm: str = Field(default="HS256")
    jwt_expiry_minutes: int = Field(default=15)
    jwt_issuer: str = Field(default="medconsent")

    # Audit trail settings
    history_hash_algorithm: str = Field(
        default="sha256",
        description="Hash algorithm for the per-record history chain (sha256, sha512, blake2b)"
    )

    # Input limits
    max_metadata_uri_length: int = Field(default=2048)
    max_consent_type_length: int = Field(default=64)

    # Environment-specific overrides
    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=True)

    @field_validator("history_hash_algorithm")
    @classmethod
    def _check_hash_algorithm(cls, value: str) -> str:
        if value not in HistoryChainDefaults.SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported history hash algorithm: {value}")
        return value

    model_config = {"env_prefix": "MEDCONSENT_", "case_sensitive": False}


# Global configuration instance
registry_config = RegistryConfig()


def get_registry_config() -> RegistryConfig:
    """Get the global registry configuration instance"""
    return registry_config


def update_registry_config(**kwargs) -> RegistryConfig:
    """Update registry configuration with new values"""
    global registry_config
    for key, value in kwargs.items():
        if hasattr(registry_config, key):
            setattr(registry_config, key, value)
    return registry_config
