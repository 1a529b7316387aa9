"""Environment and secrets loading shared by the CLI and the Streamlit pages."""

import os
import logging
from pathlib import Path
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).parent.parent

SECRET_KEYS = (
    "ANTHROPIC_API_KEY",
    "GEMINI_API_KEY",
    "LLM_PROVIDER",
    "FIRECRAWL_API_KEY",
    "APP_PASSWORD",
)

# Pages analyzed concurrently per batch during a site crawl
ANALYSIS_BATCH_SIZE = 8
# Seconds between crawl status checks
POLL_INTERVAL = 10
# Seconds to wait before the single analysis retry
ANALYSIS_RETRY_DELAY = 5


def load_env_file(paths: Optional[Iterable[Path]] = None, override: bool = True) -> bool:
    """Load environment variables from the first .env file found."""
    env_paths = list(paths) if paths is not None else [
        PROJECT_ROOT / ".env",
        Path.cwd() / ".env",
    ]
    for env_path in env_paths:
        env_path = Path(env_path)
        if env_path.exists():
            with open(env_path, 'r', encoding='utf-8') as f:
                for line in f:
                    line = line.strip()
                    if line and not line.startswith('#') and '=' in line:
                        key, value = line.split('=', 1)
                        if override:
                            os.environ[key.strip()] = value.strip()
                        else:
                            os.environ.setdefault(key.strip(), value.strip())
            logger.debug("Loaded environment from: %s", env_path)
            return True
    return False


def bridge_streamlit_secrets(keys: Iterable[str] = SECRET_KEYS) -> None:
    """Copy Streamlit Cloud secrets into os.environ so every module can read them."""
    try:
        import streamlit as st
        for key in keys:
            if key not in os.environ:
                value = st.secrets.get(key)
                if value:
                    os.environ[key] = value
    except Exception:
        # st.secrets raises when no secrets.toml exists (local dev)
        logger.debug("Streamlit secrets unavailable")


def get_secret(key: str, default: Optional[str] = None) -> Optional[str]:
    """Get a secret from env vars, falling back to Streamlit secrets."""
    value = os.environ.get(key)
    if not value:
        try:
            import streamlit as st
            value = st.secrets.get(key)
        except Exception:
            value = None
    return value or default


def get_data_dir() -> Path:
    """Directory holding crawl jobs, page analyses and user settings."""
    configured = os.environ.get("UX_AUDIT_DATA_DIR")
    return Path(configured) if configured else PROJECT_ROOT / "data"
