import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import requests
from PySide6.QtCore import QThread

from ...utils.logger import get_logger
from ..concurrency import Channel
from ..errors import DownloadError

WHISPER_CPP_MODEL_BASE = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main"
DOWNLOAD_CHUNK_SIZE = 64 * 1024


def get_model_url(model_file: str) -> str:
    return f"{WHISPER_CPP_MODEL_BASE}/{model_file}"


def get_part_path(model_path: Path) -> Path:
    """Staging file for a download in progress, never a valid model."""
    return model_path.with_name(model_path.name + ".part")


@dataclass(frozen=True)
class DownloadProgress:
    downloaded: int
    total: Optional[int] = None

    @property
    def fraction(self) -> Optional[float]:
        if not self.total:
            return None
        return min(1.0, self.downloaded / self.total)


@dataclass(frozen=True)
class DownloadFinished:
    path: Path


@dataclass(frozen=True)
class DownloadFailed:
    error: DownloadError


ProgressCallback = Callable[[DownloadProgress], None]


class ModelDownloader:
    """
    Streams a model file to ``<name>.part`` and renames it into place.

    On any failure the part file is removed before the error is raised, so
    the destination is either absent or one complete file.
    """

    def __init__(self, timeout: float = 30, chunk_size: int = DOWNLOAD_CHUNK_SIZE):
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._logger = get_logger(__name__)

    def download(
        self,
        url: str,
        destination: Path,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Path:
        destination = Path(destination)
        part_path = get_part_path(destination)

        self._logger.info(f"Downloading model from {url} to {destination}")

        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            self._stream_to_file(url, part_path, on_progress)
            os.replace(part_path, destination)
        except requests.RequestException as e:
            self._remove_part(part_path)
            raise DownloadError(f"Download request failed: {e}") from e
        except OSError as e:
            self._remove_part(part_path)
            raise DownloadError(f"Failed to write model file: {e}") from e
        except DownloadError:
            self._remove_part(part_path)
            raise

        self._logger.info(f"Model downloaded successfully: {destination}")
        return destination

    def _stream_to_file(
        self,
        url: str,
        part_path: Path,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        with requests.get(url, stream=True, timeout=self._timeout) as response:
            if not response.ok:
                raise DownloadError(
                    f"Download failed: HTTP {response.status_code} {response.reason}"
                )

            content_length = response.headers.get("content-length")
            total = (
                int(content_length)
                if content_length and content_length.isdigit()
                else None
            )
            downloaded = 0

            with open(part_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=self._chunk_size):
                    if not chunk:
                        continue
                    f.write(chunk)
                    downloaded += len(chunk)

                    if on_progress:
                        on_progress(DownloadProgress(downloaded, total))

        if total is not None and downloaded != total:
            raise DownloadError(
                f"Download incomplete: received {downloaded} of {total} bytes"
            )

    def _remove_part(self, part_path: Path) -> None:
        try:
            part_path.unlink(missing_ok=True)
        except OSError as e:
            self._logger.error(f"Failed to remove partial download {part_path}: {e}")


class ModelDownloadThread(QThread):
    """
    Runs a ``ModelDownloader`` off the UI thread.

    Sends ``DownloadProgress`` for every chunk, then exactly one
    ``DownloadFinished`` or ``DownloadFailed``, and closes the channel.
    """

    def __init__(
        self,
        url: str,
        destination: Path,
        channel: Channel,
        downloader: Optional[ModelDownloader] = None,
        parent=None,
    ):
        super().__init__(parent)
        self._url = url
        self._destination = Path(destination)
        self._channel = channel
        self._downloader = downloader or ModelDownloader()
        self._logger = get_logger(__name__)

    def run(self):
        try:
            path = self._downloader.download(
                self._url, self._destination, on_progress=self._channel.send
            )
            self._channel.send(DownloadFinished(path))
        except DownloadError as e:
            self._logger.error(f"Model download failed: {e}")
            self._channel.send(DownloadFailed(e))
        except Exception as e:
            self._logger.exception(f"Unexpected model download error: {e}")
            self._channel.send(DownloadFailed(DownloadError(str(e))))
        finally:
            self._channel.close()
