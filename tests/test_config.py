"""
Tests for registry configuration
"""

import pytest
from pydantic import ValidationError as SettingsValidationError

from medconsent.config import RegistryConfig


class TestRegistryConfig:
    """Test settings defaults and environment overrides"""

    def test_defaults(self):
        config = RegistryConfig()

        assert config.database_url is None
        assert config.event_topic == "consent"
        assert config.history_hash_algorithm == "sha256"

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("MEDCONSENT_DATABASE_URL", "sqlite:///registry.db")
        monkeypatch.setenv("MEDCONSENT_EVENT_TOPIC", "medconsent")

        config = RegistryConfig()

        assert config.database_url == "sqlite:///registry.db"
        assert config.event_topic == "medconsent"

    def test_rejects_unknown_hash_algorithm(self):
        with pytest.raises(SettingsValidationError):
            RegistryConfig(history_hash_algorithm="md5")
