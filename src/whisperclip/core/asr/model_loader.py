"""
Background model loading thread.

Provides async model loading to keep the UI responsive during model initialization.
"""

from dataclasses import dataclass
from pathlib import Path

from PySide6.QtCore import QThread

from ...utils.logger import get_logger
from ..concurrency import Channel
from ..errors import ModelLoadError
from .local_backend import LocalWhisper

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModelLoaded:
    model: LocalWhisper


@dataclass(frozen=True)
class ModelLoadFailed:
    error: ModelLoadError


class ModelLoaderThread(QThread):
    """
    Background thread for loading the whisper model without blocking the UI.

    Sends a single ``ModelLoaded`` or ``ModelLoadFailed`` message, then closes
    the channel.
    """

    def __init__(self, model_path: Path, channel: Channel, parent=None):
        super().__init__(parent)
        self._model_path = Path(model_path)
        self._channel = channel

    def run(self):
        logger.info(f"Background loading model: {self._model_path}")

        try:
            model = LocalWhisper(self._model_path)
            logger.info("Background model loading complete")
            self._channel.send(ModelLoaded(model))
        except ModelLoadError as e:
            logger.error(f"Background model loading error: {e}")
            self._channel.send(ModelLoadFailed(e))
        except Exception as e:
            logger.exception(f"Background model loading error: {e}")
            self._channel.send(ModelLoadFailed(ModelLoadError(str(e))))
        finally:
            self._channel.close()
