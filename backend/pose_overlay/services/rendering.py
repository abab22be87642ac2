# Overlay renderer — draws person boxes and joint dots, then rotates/scales the
# whole overlay onto the preview in one affine warp.

from __future__ import annotations

import logging
import threading

import cv2
import numpy as np

from pose_overlay.models.pose import OverlaySnapshot, OverlayTransform, PersonOverlay, RenderPoint, RenderRect
from pose_overlay.services.geometry import overlay_transform

logger = logging.getLogger(__name__)

# Colour palette (BGRA)
COLOR_PERSON_BOX = (68, 195, 119, 91)   # translucent green
COLOR_JOINT = (255, 255, 255, 255)      # white


def draw_bounding_box(
    canvas: np.ndarray,
    rect: RenderRect,
    color: tuple[int, int, int, int] = COLOR_PERSON_BOX,
    corner_radius: int = 10,
) -> np.ndarray:
    """Fill a rounded rectangle on a BGRA canvas. Empty rects draw nothing."""
    if rect.is_empty:
        return canvas
    x0, y0 = int(round(rect.x)), int(round(rect.y))
    x1, y1 = int(round(rect.x + rect.width)), int(round(rect.y + rect.height))
    r = max(0, min(corner_radius, (x1 - x0) // 2, (y1 - y0) // 2))

    cv2.rectangle(canvas, (x0 + r, y0), (x1 - r, y1), color, -1)
    cv2.rectangle(canvas, (x0, y0 + r), (x1, y1 - r), color, -1)
    if r > 0:
        for cx, cy in ((x0 + r, y0 + r), (x1 - r, y0 + r), (x0 + r, y1 - r), (x1 - r, y1 - r)):
            cv2.circle(canvas, (cx, cy), r, color, -1, cv2.LINE_AA)
    return canvas


def draw_joints(
    canvas: np.ndarray,
    points: tuple[RenderPoint, ...] | list[RenderPoint],
    color: tuple[int, int, int, int] = COLOR_JOINT,
    radius: int = 10,
) -> np.ndarray:
    """Draw a filled dot for every joint."""
    for point in points:
        center = (int(round(point.x)), int(round(point.y)))
        cv2.circle(canvas, center, radius, color, -1, cv2.LINE_AA)
    return canvas


def draw_people(
    canvas: np.ndarray,
    people: tuple[PersonOverlay, ...],
    joint_radius: int = 10,
    corner_radius: int = 10,
) -> np.ndarray:
    for person in people:
        draw_bounding_box(canvas, person.box, corner_radius=corner_radius)
        draw_joints(canvas, person.points, radius=joint_radius)
    return canvas


def blend_overlay(base_bgr: np.ndarray, overlay_bgra: np.ndarray) -> np.ndarray:
    """Alpha-composite a BGRA overlay over a BGR image of the same size."""
    alpha = overlay_bgra[:, :, 3:4].astype(np.float32) / 255.0
    out = base_bgr.astype(np.float32) * (1.0 - alpha) + overlay_bgra[:, :, :3].astype(np.float32) * alpha
    return np.clip(out, 0, 255).astype(np.uint8)


class OverlayRenderer:
    """Holds the committed overlay and composes it onto preview frames.

    ``commit`` may be called from any thread; it swaps the whole snapshot at
    once so a frame is never drawn from a half-updated set of primitives.
    """

    def __init__(
        self,
        view_size: tuple[int, int],
        transform: OverlayTransform | None = None,
        surface_size: tuple[int, int] | None = None,
        joint_radius: int = 10,
        corner_radius: int = 10,
    ) -> None:
        self.view_size = view_size
        self.joint_radius = joint_radius
        self.corner_radius = corner_radius
        self._lock = threading.Lock()
        self._snapshot = OverlaySnapshot(
            transform=transform or OverlayTransform(),
            surface_size=surface_size,
        )

    @property
    def snapshot(self) -> OverlaySnapshot:
        with self._lock:
            return self._snapshot

    def commit(self, snapshot: OverlaySnapshot) -> None:
        """Replace the previous frame's primitives with ``snapshot``."""
        with self._lock:
            self._snapshot = snapshot

    def clear(self) -> None:
        """Drop all primitives, keeping the current transform."""
        with self._lock:
            self._snapshot = OverlaySnapshot(
                transform=self._snapshot.transform,
                frame_index=self._snapshot.frame_index,
                surface_size=self._snapshot.surface_size,
            )

    def draw_overlay(self, buffer_size: tuple[int, int], snapshot: OverlaySnapshot | None = None) -> np.ndarray:
        """Draw a snapshot into a transparent buffer-sized BGRA canvas."""
        if snapshot is None:
            snapshot = self.snapshot
        width, height = buffer_size
        canvas = np.zeros((height, width, 4), dtype=np.uint8)
        return draw_people(canvas, snapshot.people, self.joint_radius, self.corner_radius)

    def compose(self, frame_bgr: np.ndarray) -> np.ndarray:
        """Return the preview for ``frame_bgr`` with the committed overlay on top.

        The snapshot's transform is applied once to the whole overlay surface.
        The frame gets the same rotation and mirror; when the overlay was
        mapped into a swapped (H, W) surface the frame is fitted with its own
        scale so both fill the view.
        """
        snapshot = self.snapshot
        height, width = frame_bgr.shape[:2]
        frame_size = (width, height)
        surface_size = snapshot.surface_size or frame_size
        transform = snapshot.transform

        if surface_size == frame_size:
            frame_transform = transform
        else:
            frame_transform = overlay_transform(
                frame_size, self.view_size, transform.rotation_degrees, transform.mirror,
            )
        preview = cv2.warpAffine(
            frame_bgr, frame_transform.matrix(frame_size, self.view_size), self.view_size,
            flags=cv2.INTER_LINEAR,
        )
        if snapshot.is_empty:
            return preview

        canvas = self.draw_overlay(surface_size, snapshot)
        overlay = cv2.warpAffine(
            canvas, transform.matrix(surface_size, self.view_size), self.view_size,
            flags=cv2.INTER_LINEAR,
            borderMode=cv2.BORDER_CONSTANT,
            borderValue=(0, 0, 0, 0),
        )
        return blend_overlay(preview, overlay)
