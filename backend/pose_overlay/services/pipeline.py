# Per-frame pipeline — observations -> render primitives -> renderer commit.
# PosePipeline is pure; FrameProcessor runs it on a worker thread.

from __future__ import annotations

import logging
import threading
import time

from pose_overlay.config import OverlayConfig
from pose_overlay.models.pose import Observation, OverlaySnapshot, PersonOverlay
from pose_overlay.services.geometry import (
    bounding_box,
    filter_joints,
    overlay_transform,
    to_view_points,
    to_view_rect,
)
from pose_overlay.services.pose import DetectionError, PoseDetector
from pose_overlay.services.rendering import OverlayRenderer
from pose_overlay.services.video import LatestFrameSlot

logger = logging.getLogger(__name__)


class PosePipeline:
    """Geometry for one frame, configured once at construction."""

    def __init__(self, config: OverlayConfig | None = None) -> None:
        self.config = config or OverlayConfig()

    def person_overlay(self, observation: Observation, buffer_size: tuple[int, int]) -> PersonOverlay:
        cfg = self.config
        width, height = buffer_size
        joint_map = filter_joints(observation, cfg.detection_min_confidence, cfg.point_min_confidence)
        box = to_view_rect(
            bounding_box(joint_map),
            width,
            height,
            cfg.box_padding_x,
            cfg.box_padding_y,
            swap_axes=cfg.swap_buffer_axes,
        )
        points = to_view_points(
            joint_map,
            cfg.joints_of_interest,
            width,
            height,
            swap_axes=cfg.swap_buffer_axes,
        )
        return PersonOverlay(box=box, points=tuple(points))

    def build_snapshot(
        self,
        observations: list[Observation],
        buffer_size: tuple[int, int],
        view_size: tuple[int, int] | None = None,
        frame_index: int = -1,
    ) -> OverlaySnapshot:
        """Render primitives for every person worth drawing, plus the frame transform."""
        if view_size is None:
            view_size = self.config.view_size(buffer_size)
        people = []
        for observation in observations:
            person = self.person_overlay(observation, buffer_size)
            if person.box.is_empty and not person.points:
                continue
            people.append(person)
        surface_size = self.surface_size(buffer_size)
        transform = overlay_transform(
            surface_size,
            view_size,
            rotation_degrees=self.config.display_rotation,
            mirror=self.config.mirror,
        )
        return OverlaySnapshot(
            people=tuple(people),
            transform=transform,
            frame_index=frame_index,
            surface_size=surface_size,
        )

    def surface_size(self, buffer_size: tuple[int, int]) -> tuple[int, int]:
        """Pixel space the mapper scales into; (H, W) when the axes are swapped."""
        width, height = buffer_size
        if self.config.swap_buffer_axes:
            return height, width
        return width, height


class FrameProcessor(threading.Thread):
    """Worker that turns the latest captured frame into a committed overlay.

    Detection runs synchronously here. A failed frame is logged and the
    overlay is cleared so stale boxes do not linger.
    """

    def __init__(
        self,
        detector: PoseDetector,
        pipeline: PosePipeline,
        renderer: OverlayRenderer,
        slot: LatestFrameSlot,
        view_size: tuple[int, int] | None = None,
        log_every: int = 100,
    ) -> None:
        super().__init__(name="processor", daemon=True)
        self.detector = detector
        self.pipeline = pipeline
        self.renderer = renderer
        self.slot = slot
        self.view_size = view_size
        self.log_every = log_every

        self.frames_processed = 0
        self.frames_failed = 0
        self.frames_with_people = 0
        self._stop_event = threading.Event()

    def process_frame(self, frame_index: int, frame_bgr) -> OverlaySnapshot | None:
        """Detect, build and commit one frame. Returns None if detection failed."""
        height, width = frame_bgr.shape[:2]
        try:
            observations = self.detector.detect(frame_bgr)
        except DetectionError as exc:
            self.frames_failed += 1
            logger.warning("Skipping frame %d: %s", frame_index, exc)
            self.renderer.clear()
            return None

        snapshot = self.pipeline.build_snapshot(
            observations, (width, height), self.view_size, frame_index=frame_index,
        )
        self.renderer.commit(snapshot)

        self.frames_processed += 1
        if not snapshot.is_empty:
            self.frames_with_people += 1
        if self.log_every and self.frames_processed % self.log_every == 0:
            logger.info(
                "Processed %d frames (%d with people, %d failed, %d dropped)",
                self.frames_processed, self.frames_with_people,
                self.frames_failed, self.slot.dropped,
            )
        return snapshot

    def run(self) -> None:
        start_time = time.time()
        try:
            while not self._stop_event.is_set():
                item = self.slot.get(timeout=0.5)
                if item is None:
                    if self.slot.closed:
                        break
                    continue
                frame_index, frame_bgr = item
                try:
                    self.process_frame(frame_index, frame_bgr)
                except Exception:
                    self.frames_failed += 1
                    logger.exception("Error processing frame %d", frame_index)
                    self.renderer.clear()
        except Exception:
            logger.exception("Processor thread error")
        finally:
            logger.info(
                "Processing stopped after %.1fs: %d frames, %d with people, %d failed, %d dropped",
                time.time() - start_time, self.frames_processed,
                self.frames_with_people, self.frames_failed, self.slot.dropped,
            )

    def stop(self) -> None:
        self._stop_event.set()

    def summary(self) -> dict:
        return {
            "backend": self.detector.name(),
            "frames_processed": self.frames_processed,
            "frames_with_people": self.frames_with_people,
            "frames_failed": self.frames_failed,
            "frames_dropped": self.slot.dropped,
        }
