import pytest
from pydantic import ValidationError

from ms_portfolio_bs import main
from ms_portfolio_bs.config import Settings, get_settings


@pytest.fixture
def clean_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_defaults(monkeypatch):
    monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
    for var in ("HTTP_PORT", "MONGO_DB", "MONGO_COLLECTION", "SEED_FILE", "BASE_PATH"):
        monkeypatch.delenv(var, raising=False)

    settings = Settings(_env_file=None)

    assert settings.mongo_uri == "mongodb://db:27017"
    assert settings.http_port == 3002
    assert settings.mongo_db == "portfolio_db"
    assert settings.mongo_collection == "portfolio"
    assert settings.seed_file == "client_portfolio.json"
    assert settings.base_path == "/ms-portfolio-bs/v1"
    assert settings.enable_database_tracing is False


def test_port_read_from_environment(monkeypatch):
    monkeypatch.setenv("MONGO_URI", "mongodb://db:27017")
    monkeypatch.setenv("HTTP_PORT", "8080")

    assert Settings(_env_file=None).http_port == 8080


def test_missing_uri_is_rejected(monkeypatch):
    monkeypatch.delenv("MONGO_URI", raising=False)

    with pytest.raises(ValidationError):
        Settings(_env_file=None)


def test_blank_uri_is_rejected():
    with pytest.raises(ValidationError, match="MONGO_URI is not set"):
        Settings(_env_file=None, mongo_uri="   ")


@pytest.mark.parametrize("raw,expected", [
    ("ms-portfolio-bs/v1/", "/ms-portfolio-bs/v1"),
    ("/api", "/api"),
    ("", ""),
])
def test_base_path_normalized(raw, expected):
    settings = Settings(_env_file=None, mongo_uri="mongodb://db:27017", base_path=raw)
    assert settings.base_path == expected


def test_run_exits_when_uri_missing(monkeypatch, tmp_path, clean_settings_cache):
    # No .env in the working directory either
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("MONGO_URI", raising=False)
    monkeypatch.setattr(main, "setup_logging", lambda *args, **kwargs: None)

    with pytest.raises(SystemExit) as exc_info:
        main.run()

    assert exc_info.value.code == 1
