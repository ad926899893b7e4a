"""
Startup configuration read from the environment.

A ``.env`` file in the working directory (or the one passed to
``load_config``) is loaded first; variables already set in the environment
win. Missing credentials for the default remote backend are fatal.
"""

import os
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, ValidationError

from .core.asr.backends import BackendKind
from .core.asr.model_downloader import get_model_url
from .core.errors import ConfigError
from .core.settings.settings import get_models_dir

DEFAULT_API_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_API_MODEL = "whisper-large-v3-turbo"
DEFAULT_WHISPER_MODEL = "ggml-base.en.bin"


class AppConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    default_backend: BackendKind = BackendKind.REMOTE
    api_key: Optional[str] = None
    api_base_url: str = DEFAULT_API_BASE_URL
    api_model: str = DEFAULT_API_MODEL
    whisper_model: str = DEFAULT_WHISPER_MODEL
    whisper_model_url: Optional[str] = None
    models_dir: Optional[Path] = None

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @property
    def model_path(self) -> Path:
        return (self.models_dir or get_models_dir()) / self.whisper_model

    @property
    def model_url(self) -> str:
        return self.whisper_model_url or get_model_url(self.whisper_model)


def _get(environ: Mapping[str, str], name: str) -> Optional[str]:
    value = environ.get(name, "").strip()
    return value or None


def load_config(
    env_file: Optional[Union[str, Path]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> AppConfig:
    """
    Build the application configuration.

    Raises:
        ConfigError: If a value is invalid or the default backend is the
            remote API and no API key is set.
    """
    if environ is None:
        load_dotenv(dotenv_path=env_file, override=False)
        environ = os.environ

    service = _get(environ, "PRIMARY_TRANSCRIPTION_SERVICE") or "api"
    default_backend = BackendKind.parse(service)
    if default_backend is None:
        raise ConfigError(
            f"PRIMARY_TRANSCRIPTION_SERVICE must be 'api', 'groq' or 'local', got {service!r}"
        )

    values = {
        "default_backend": default_backend,
        "api_key": _get(environ, "API_KEY") or _get(environ, "GROQ_API_KEY"),
        "api_base_url": (
            _get(environ, "API_BASE_URL") or DEFAULT_API_BASE_URL
        ).rstrip("/"),
        "api_model": _get(environ, "API_MODEL")
        or _get(environ, "GROQ_STT_MODEL")
        or DEFAULT_API_MODEL,
        "whisper_model": _get(environ, "WHISPER_MODEL") or DEFAULT_WHISPER_MODEL,
        "whisper_model_url": _get(environ, "WHISPER_MODEL_URL"),
        "models_dir": _get(environ, "WHISPERCLIP_MODELS_DIR"),
    }

    try:
        config = AppConfig(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    if config.default_backend == BackendKind.REMOTE and not config.has_api_key:
        raise ConfigError(
            "API_KEY (or GROQ_API_KEY) must be set when the default "
            "transcription service is the remote API"
        )

    return config
