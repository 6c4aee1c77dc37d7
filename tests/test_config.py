import pytest

from medcrm.config import load_settings
from medcrm.errors import ConfigError
from medcrm.preferences import PreferenceStore


def write_secrets(tmp_path, text):
    path = tmp_path / "secrets.toml"
    path.write_text(text)
    return str(path)


def test_reads_secrets_file(tmp_path):
    path = write_secrets(tmp_path, 'SUPABASE_URL = "https://db.example"\nSUPABASE_KEY = "anon"\n')
    settings = load_settings(path, environ={})
    assert settings.supabase_url == "https://db.example"
    assert settings.supabase_key == "anon"
    assert settings.session_check_interval == 60
    assert settings.refresh_threshold == 120
    assert settings.keepalive_interval == 600
    assert settings.max_retries == 1


def test_environment_wins(tmp_path):
    path = write_secrets(tmp_path, 'SUPABASE_URL = "https://file"\nSUPABASE_KEY = "file-key"\n')
    env = {"SUPABASE_URL": "https://env", "MEDCRM_MAX_RETRIES": "2", "MEDCRM_LOG_LEVEL": "debug"}
    settings = load_settings(path, environ=env)
    assert settings.supabase_url == "https://env"
    assert settings.supabase_key == "file-key"
    assert settings.max_retries == 2
    assert settings.log_level == "DEBUG"


def test_missing_credentials_raise(tmp_path):
    with pytest.raises(ConfigError):
        load_settings(str(tmp_path / "absent.toml"), environ={})


def test_bad_number_raises(tmp_path):
    env = {"SUPABASE_URL": "u", "SUPABASE_KEY": "k", "MEDCRM_REFRESH_THRESHOLD": "soon"}
    with pytest.raises(ConfigError):
        load_settings(str(tmp_path / "absent.toml"), environ=env)


def test_preferences_are_namespaced():
    backend = {"other": 1}
    prefs = PreferenceStore(backend)
    prefs.set("hospital_sort", {"key": "name"})
    assert prefs.get("hospital_sort") == {"key": "name"}
    assert prefs.keys() == ["hospital_sort"]
    prefs.clear()
    assert backend == {"other": 1}


def test_preferences_need_a_mapping():
    with pytest.raises(TypeError):
        PreferenceStore(["not", "a", "mapping"])
