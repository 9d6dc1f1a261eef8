"""Settings loading from the environment and from .env files."""
from materix.config import Settings


class TestSettings:

    def test_environment_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("LIMITER_REQUESTS", "3")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
        settings = Settings()
        assert settings.LIMITER_REQUESTS == 3
        assert settings.cors_origins == ["https://a.example", "https://b.example"]

    def test_env_file_with_unrelated_keys(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PORT", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("PORT=5050\nSOME_OTHER_SERVICE_TOKEN=abc\n")
        settings = Settings(_env_file=env_file)
        assert settings.PORT == 5050
