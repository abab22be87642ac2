# Video input service — reads frames from a camera or file and hands the most
# recent one to the processing thread. Late frames are dropped, never queued.

from __future__ import annotations

import logging
import threading
import time
from typing import Generator

import cv2
import numpy as np

logger = logging.getLogger(__name__)


def _parse_source(source: str | int) -> str | int:
    """Camera indices come in as "0", "1", ...; anything else is a path or URL."""
    if isinstance(source, int):
        return source
    return int(source) if source.isdigit() else source


class FrameSource:
    """Wraps cv2.VideoCapture over a camera index or a video file."""

    def __init__(self, source: str | int = 0) -> None:
        self._source = _parse_source(source)
        self._cap = cv2.VideoCapture(self._source)
        if not self._cap.isOpened():
            raise ValueError(f"Cannot open video source: {source}")

        self._fps = self._cap.get(cv2.CAP_PROP_FPS) or 30.0
        self._width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        self._height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        self._total_frames = int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT))

    @property
    def is_live(self) -> bool:
        return isinstance(self._source, int)

    @property
    def buffer_size(self) -> tuple[int, int]:
        return self._width, self._height

    @property
    def fps(self) -> float:
        return self._fps

    def get_metadata(self) -> dict:
        """Return source metadata."""
        return {
            "source": self._source,
            "live": self.is_live,
            "fps": self._fps,
            "width": self._width,
            "height": self._height,
            "total_frames": self._total_frames if not self.is_live else None,
        }

    def frames(self) -> Generator[tuple[int, np.ndarray], None, None]:
        """Yield (frame_index, frame_bgr) until the source runs dry."""
        idx = 0
        while True:
            ret, frame = self._cap.read()
            if not ret:
                break
            yield idx, frame
            idx += 1

    def release(self) -> None:
        self._cap.release()


class LatestFrameSlot:
    """Single-slot mailbox between the capture and processing threads.

    ``put`` overwrites a frame nobody has taken yet; that frame counts as
    dropped. ``get`` returns None on timeout or once the slot is closed and
    drained.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._item: tuple[int, np.ndarray] | None = None
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def put(self, frame_index: int, frame: np.ndarray) -> None:
        with self._cond:
            if self._closed:
                return
            if self._item is not None:
                self.dropped += 1
                logger.debug("Dropping late frame %d", self._item[0])
            self._item = (frame_index, frame)
            self._cond.notify()

    def get(self, timeout: float | None = None) -> tuple[int, np.ndarray] | None:
        with self._cond:
            if self._item is None and not self._closed:
                self._cond.wait(timeout)
            item, self._item = self._item, None
            return item

    def close(self) -> None:
        with self._cond:
            self._closed = True
            self._cond.notify_all()


class CaptureThread(threading.Thread):
    """Reads frames serially from a FrameSource into a LatestFrameSlot.

    File sources are paced to their fps so playback runs in real time; live
    cameras deliver at their own rate. ``latest_frame`` keeps the newest
    frame for the display loop.
    """

    def __init__(self, source: FrameSource, slot: LatestFrameSlot) -> None:
        super().__init__(name="capture", daemon=True)
        self.source = source
        self.slot = slot
        self.frames_read = 0
        self._stop_event = threading.Event()
        self._latest_lock = threading.Lock()
        self._latest: np.ndarray | None = None

    @property
    def latest_frame(self) -> np.ndarray | None:
        with self._latest_lock:
            return self._latest

    def run(self) -> None:
        interval = 0.0 if self.source.is_live else 1.0 / max(self.source.fps, 1.0)
        try:
            for frame_idx, frame in self.source.frames():
                if self._stop_event.is_set():
                    break
                started = time.monotonic()
                with self._latest_lock:
                    self._latest = frame
                self.slot.put(frame_idx, frame)
                self.frames_read += 1
                if interval:
                    self._stop_event.wait(max(0.0, interval - (time.monotonic() - started)))
        except Exception:
            logger.exception("Capture thread error")
        finally:
            logger.info("Capture finished after %d frames", self.frames_read)
            self.slot.close()
            self.source.release()

    def stop(self) -> None:
        self._stop_event.set()
