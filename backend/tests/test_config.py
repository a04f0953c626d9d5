"""
Tests for application and site configuration.
"""

import pytest


class TestSettings:
    """Test the Settings configuration class."""

    def test_settings_defaults(self):
        """Test that settings have sensible defaults."""
        from api.config import Settings

        settings = Settings(_env_file=None)

        assert settings.api_host == "0.0.0.0"
        assert settings.api_port == 8000
        assert settings.api_debug is False
        assert settings.crawler_max_attempts == 3
        assert settings.crawler_backoff_seconds == 1.0
        assert settings.crawler_task_timeout == 60.0
        assert settings.crawler_min_workers == 3
        assert settings.crawler_max_workers == 8
        assert settings.crawler_max_pages is None
        assert settings.log_level == "INFO"

    def test_settings_from_environment(self, monkeypatch):
        """Test that crawler knobs are read from the environment."""
        from api.config import Settings

        monkeypatch.setenv("CRAWLER_MAX_ATTEMPTS", "5")
        monkeypatch.setenv("EMBEDDING_URL", "http://localhost:11434/v1")

        settings = Settings(_env_file=None)

        assert settings.crawler_max_attempts == 5
        assert settings.embedding_url == "http://localhost:11434/v1"

    def test_env_file_only_when_present(self):
        """Test that a missing .env file is not configured as a source."""
        from pathlib import Path
        from api.config import Settings

        expected = ".env" if Path(".env").exists() else None
        assert Settings.model_config.get("env_file") == expected

    def test_settings_database_url(self):
        """Test that database URL is set."""
        from api.config import settings

        assert settings.database_url is not None

    def test_settings_cors_origins(self):
        """Test that CORS origins are configured."""
        from api.config import settings

        assert isinstance(settings.cors_origins, list)
        assert len(settings.cors_origins) > 0

    def test_settings_log_paths(self):
        """Test that log paths are valid."""
        from api.config import settings

        assert settings.log_dir is not None
        assert settings.log_file.name == "crawler.log"

    def test_settings_data_dir(self):
        """Test that data directory path is valid."""
        from api.config import settings

        assert "data" in str(settings.data_dir)


class TestSiteConfig:
    """Test the static site registry."""

    def test_known_sites(self):
        from crawler.config import list_sites, get_supported_sites

        assert list_sites() == ['saramin', 'jobkorea', 'wanted', 'programmers', 'jumpit']
        assert get_supported_sites()['saramin'] == '사람인'

    def test_listing_url(self):
        from crawler.config import get_site_config

        assert get_site_config('jumpit').listing_url(2) == 'https://www.jumpit.co.kr/positions?page=2'
        assert 'recruitPage=3' in get_site_config('saramin').listing_url(3)

    def test_unknown_site(self):
        from crawler.config import get_site_config

        with pytest.raises(ValueError):
            get_site_config('indeed')

    def test_site_config_is_immutable(self):
        from dataclasses import FrozenInstanceError
        from crawler.config import get_site_config

        with pytest.raises(FrozenInstanceError):
            get_site_config('wanted').max_pages = 10

    def test_site_summary(self):
        from crawler.config import get_site_summary

        summary = get_site_summary()

        assert len(summary) == 5
        assert all(site['max_pages'] == 3 for site in summary)

    def test_enabled_sites(self):
        from crawler.config import get_enabled_sites

        assert set(get_enabled_sites()) == {'saramin', 'jobkorea', 'wanted', 'programmers', 'jumpit'}
