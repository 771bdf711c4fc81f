# flake8: noqa
import pytest

from recipe_keeper.app import create_app
from recipe_keeper.config import DEFAULT_CORS_ORIGINS, load_settings
from recipe_keeper.errors import ConfigurationError


def test_missing_url_is_a_configuration_error():
    with pytest.raises(ConfigurationError) as info:
        load_settings({"SUPABASE_ANON_KEY": "anon"})
    assert info.value.message == "Server configuration error: SUPABASE_URL is missing"
    assert info.value.status_code == 500


def test_missing_key_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="SUPABASE_ANON_KEY is missing"):
        load_settings({"SUPABASE_URL": "https://project.supabase.co"})


def test_key_falls_back_to_supabase_key():
    settings = load_settings({"SUPABASE_URL": "https://project.supabase.co/", "SUPABASE_KEY": "service"})
    assert settings.supabase_key == "service"
    assert settings.supabase_url == "https://project.supabase.co"
    assert settings.port == 5000
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS
    assert settings.database_url.startswith("sqlite")


def test_optional_values_are_read():
    settings = load_settings({
        "SUPABASE_URL": "https://project.supabase.co",
        "SUPABASE_ANON_KEY": "anon",
        "PORT": "8080",
        "CORS_ORIGINS": "https://recipes.example.com, http://localhost:3000",
        "DATABASE_URL": "postgresql+psycopg://u:p@db/recipes",
        "LOG_LEVEL": "debug",
    })
    assert settings.port == 8080
    assert settings.cors_origins == ["https://recipes.example.com", "http://localhost:3000"]
    assert settings.database_url == "postgresql+psycopg://u:p@db/recipes"
    assert settings.log_level == "DEBUG"


def test_bad_port_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        load_settings({"SUPABASE_URL": "https://x", "SUPABASE_ANON_KEY": "k", "PORT": "eighty"})


def test_app_factory_fails_fast_without_provider(monkeypatch):
    monkeypatch.setattr("recipe_keeper.app.load_settings", lambda: load_settings({}))
    with pytest.raises(ConfigurationError):
        create_app()
