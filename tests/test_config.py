"""
Tests for configuration lookup.
"""

import logging

import pytest

import config
from config import DevelopmentConfig, ProductionConfig, TestingConfig, configure_logging, get_config


class TestGetConfig:

    def test_by_name(self):
        assert get_config('production') is ProductionConfig
        assert get_config('Testing') is TestingConfig

    def test_from_environment(self, monkeypatch):
        monkeypatch.setenv('APP_ENV', 'production')

        assert get_config() is ProductionConfig

    def test_defaults_to_development(self, monkeypatch):
        monkeypatch.delenv('APP_ENV', raising=False)
        monkeypatch.delenv('FLASK_ENV', raising=False)

        assert get_config() is DevelopmentConfig

    def test_unknown_name(self):
        with pytest.raises(ValueError, match='Unknown config'):
            get_config('staging')

    def test_testing_uses_in_memory_sqlite(self):
        assert TestingConfig.SQLALCHEMY_DATABASE_URI == 'sqlite://'
        assert TestingConfig.TESTING is True


class TestConfigureLogging:

    def test_repeated_calls_install_one_handler(self):
        root = logging.getLogger()
        level = root.level

        try:
            configure_logging('info')
            configure_logging('debug')

            assert [handler for handler in root.handlers if handler is config._handler] == [config._handler]
            assert root.level == logging.DEBUG
        finally:
            root.setLevel(level)
