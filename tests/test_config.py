"""Tests for the configuration classes."""
import warnings

from config import ProductionConfig, TestingConfig, config


class TestConfig:
    def test_production_config_builds_without_warnings(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://pool@db/pool")

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            production = ProductionConfig()

        assert production.SQLALCHEMY_DATABASE_URI == "postgresql+psycopg://pool@db/pool"
        assert production.DEBUG is False
        assert not hasattr(production, "SECRET_KEY")

    def test_testing_config_uses_memory_database(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql+psycopg://pool@db/pool")

        testing = TestingConfig()

        assert testing.SQLALCHEMY_DATABASE_URI == "sqlite:///:memory:"
        assert testing.CACHE_TYPE == "SimpleCache"

    def test_postgres_uri_from_parts(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("DB_TYPE", "postgresql")
        monkeypatch.setenv("DB_HOST", "db")
        monkeypatch.setenv("DB_NAME", "pool")

        uri = ProductionConfig().SQLALCHEMY_DATABASE_URI

        assert uri.startswith("postgresql+psycopg://")
        assert uri.endswith("@db:5432/pool")

    def test_config_mapping(self):
        assert config["testing"] is TestingConfig
        assert config["production"] is ProductionConfig
