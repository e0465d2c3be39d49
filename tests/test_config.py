"""Tests for server configuration.

These tests cover:
1. Default values
2. Environment variable loading (LIBRARYDB_ prefix)
3. Field validation
4. Derived properties and the singleton accessors
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from librarydb.config import ServerConfig, get_config, reset_config


@pytest.mark.usefixtures("clean_env")
class TestServerConfig:
    def test_default_configuration(self):
        config = ServerConfig(_env_file=None)

        assert config.server_name == "librarydb"
        assert config.server_version == "0.1.0"
        assert config.transport == "stdio"
        assert config.database_url == "sqlite:///data/library.db"
        assert config.pool_size == 10
        assert config.max_overflow == 0
        assert config.loan_period_days == 14
        assert config.debug is False

    def test_environment_variable_loading(self):
        env_vars = {
            "LIBRARYDB_SERVER_NAME": "branch-library",
            "LIBRARYDB_DATABASE_URL": "sqlite:////tmp/branch.db",
            "LIBRARYDB_POOL_SIZE": "4",
            "LIBRARYDB_LOAN_PERIOD_DAYS": "21",
            "LIBRARYDB_DEBUG": "true",
            "LIBRARYDB_LOG_LEVEL": "debug",
        }

        with patch.dict(os.environ, env_vars):
            config = ServerConfig(_env_file=None)

        assert config.server_name == "branch-library"
        assert config.database_url == "sqlite:////tmp/branch.db"
        assert config.pool_size == 4
        assert config.loan_period_days == 21
        assert config.debug is True
        assert config.log_level == "DEBUG"

    def test_server_name_validation(self):
        for name in ["library", "branch-42", "librarydb"]:
            assert ServerConfig(server_name=name).server_name == name

        for name in ["Library_DB", "my library", "ab", "a" * 51]:
            with pytest.raises(ValidationError):
                ServerConfig(server_name=name)

    def test_version_validation(self):
        assert ServerConfig(server_version="1.0.0-beta.1").server_version == "1.0.0-beta.1"
        for version in ["1.0", "v1.0.0", "latest"]:
            with pytest.raises(ValidationError):
                ServerConfig(server_version=version)

    def test_transport_validation(self):
        assert ServerConfig(transport="streamable_http").transport == "streamable_http"
        with pytest.raises(ValidationError):
            ServerConfig(transport="websocket")

    def test_pool_bounds(self):
        with pytest.raises(ValidationError):
            ServerConfig(pool_size=0)
        with pytest.raises(ValidationError):
            ServerConfig(pool_timeout=0)
        with pytest.raises(ValidationError):
            ServerConfig(loan_period_days=0)

    def test_database_url_must_be_a_url(self):
        with pytest.raises(ValidationError):
            ServerConfig(database_url="library.db")

    def test_sqlite_path(self):
        assert ServerConfig(database_url="sqlite:///data/library.db").sqlite_path == Path(
            "data/library.db"
        )
        assert ServerConfig(database_url="sqlite:///:memory:").sqlite_path is None
        assert ServerConfig(database_url="postgresql://u@localhost/lib").sqlite_path is None
        assert ServerConfig(database_url="postgresql://u@localhost/lib").is_sqlite is False

    def test_server_info(self):
        info = ServerConfig(server_name="librarydb", transport="stdio").server_info
        assert info == {"name": "librarydb", "version": "0.1.0", "transport": "stdio"}


def test_get_config_is_a_singleton():
    reset_config()
    try:
        assert get_config() is get_config()
        first = get_config()
        reset_config()
        assert get_config() is not first
    finally:
        reset_config()
