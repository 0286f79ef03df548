from settings import MUNICH_BBOX, Settings


def test_from_env(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.example")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon-key")
    monkeypatch.setenv("MUCPAY_LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.has_store_credentials
    assert settings.log_level == "DEBUG"
    assert settings.bbox == MUNICH_BBOX


def test_missing_key_means_no_credentials(monkeypatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.example")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "")

    assert not Settings.from_env().has_store_credentials
