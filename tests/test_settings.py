from datetime import timedelta

from yourstop.settings import Settings, load_settings


def test_defaults():
    settings = Settings()

    assert settings.ttl("availability") == timedelta(minutes=5)
    assert settings.ttl("booking") == timedelta(seconds=30)
    assert settings.ttl("reviews") == timedelta(hours=24)
    assert settings.batch_max_wait == timedelta(milliseconds=100)
    assert settings.batch_url == "http://localhost:8000/api/batch"
    assert settings.rate_limits["google_places"].limit == 100


def test_placeholder_keys_are_not_configured():
    settings = Settings(YELP_API_KEY="your_yelp_api_key", RESY_API_KEY="real-key")

    assert not settings.is_provider_configured("yelp")
    assert settings.is_provider_configured("resy")
    assert not settings.is_provider_configured("unknown")


def test_load_settings_reads_environment(monkeypatch):
    monkeypatch.setenv("TOAST_API_KEY", "toast-key")
    monkeypatch.setenv("AVAILABILITY_TTL", "60")
    monkeypatch.setenv("QUEUE_MAX_CONCURRENT", "5")

    settings = load_settings(DEBUG=True)

    assert settings.get_api_key("TOAST_API_KEY") == "toast-key"
    assert settings.ttl("availability") == timedelta(seconds=60)
    assert settings.queue_max_concurrent == 5
    assert settings.debug is True
