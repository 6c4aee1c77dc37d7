import logging
import os
from dataclasses import dataclass

import toml

from medcrm.errors import ConfigError

SECRETS_PATH = os.path.join(".streamlit", "secrets.toml")

_logging_configured = False


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_key: str
    # seconds
    session_check_interval: float = 60.0
    refresh_threshold: float = 120.0
    keepalive_interval: float = 600.0
    retry_backoff: float = 0.5
    max_retries: int = 1
    log_level: str = "INFO"


def _read_secrets_file(path):
    if not os.path.exists(path):
        return {}
    try:
        return toml.load(path)
    except (toml.TomlDecodeError, OSError) as e:
        logging.getLogger(__name__).warning("Could not parse %s: %s", path, e)
        return {}


def _read_streamlit_secrets():
    # st.secrets raises when no secrets file exists, so only touch it when
    # running inside a Streamlit script.
    try:
        import streamlit as st
        from streamlit.runtime import exists as runtime_exists
    except ImportError:
        return {}
    if not runtime_exists():
        return {}
    try:
        return dict(st.secrets)
    except FileNotFoundError:
        return {}


def load_settings(secrets_path=SECRETS_PATH, environ=None):
    """
    Builds Settings from the environment, Streamlit secrets and the secrets file.

    Environment variables win over ``st.secrets``, which wins over a
    ``.streamlit/secrets.toml`` read directly (used by the admin scripts).
    """
    environ = os.environ if environ is None else environ
    sources = [environ, _read_streamlit_secrets(), _read_secrets_file(secrets_path)]

    def lookup(key, default=None):
        for source in sources:
            if key in source and source[key] not in (None, ""):
                return source[key]
        return default

    url = lookup("SUPABASE_URL")
    key = lookup("SUPABASE_KEY")
    if not url or not key:
        raise ConfigError("SUPABASE_URL and SUPABASE_KEY must be configured")

    try:
        return Settings(
            supabase_url=str(url),
            supabase_key=str(key),
            session_check_interval=float(lookup("MEDCRM_SESSION_CHECK_INTERVAL", 60.0)),
            refresh_threshold=float(lookup("MEDCRM_REFRESH_THRESHOLD", 120.0)),
            keepalive_interval=float(lookup("MEDCRM_KEEPALIVE_INTERVAL", 600.0)),
            retry_backoff=float(lookup("MEDCRM_RETRY_BACKOFF", 0.5)),
            max_retries=int(lookup("MEDCRM_MAX_RETRIES", 1)),
            log_level=str(lookup("MEDCRM_LOG_LEVEL", "INFO")).upper(),
        )
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid MedCRM setting: {e}") from e


def configure_logging(level="INFO"):
    global _logging_configured
    if _logging_configured:
        return
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_configured = True
