# Frame-to-overlay geometry — filter keypoints, enclose them, map into pixels.
# Every function here is pure; nothing is carried between frames.

from __future__ import annotations

import logging
import math
from typing import Iterable

from pose_overlay.models.pose import (
    BoundingBox,
    JointMap,
    Observation,
    OverlayTransform,
    RenderPoint,
    RenderRect,
)

logger = logging.getLogger(__name__)


def filter_joints(
    observation: Observation,
    detection_threshold: float,
    point_threshold: float,
) -> JointMap:
    """Return the joints of a confidently detected person.

    Low-confidence people and observations without joints yield an empty
    map. Joints are kept only when their confidence is strictly above
    ``point_threshold``.
    """
    if observation.confidence <= detection_threshold or not observation.joints:
        return {}
    return {
        name: (point.x, point.y)
        for name, point in observation.joints.items()
        if point.confidence > point_threshold
    }


def bounding_box(joint_map: JointMap) -> BoundingBox:
    """Smallest normalized box enclosing every joint."""
    box = BoundingBox.EMPTY
    for x, y in joint_map.values():
        box = box.union(BoundingBox.at(x, y))
    return box


def flip_vertical(y: float) -> float:
    """Bottom-left-origin y to top-left-origin y (normalized)."""
    return 1.0 - y


def _pixel_scale(buffer_width: float, buffer_height: float, swap_axes: bool) -> tuple[float, float]:
    if swap_axes:
        return buffer_height, buffer_width
    return buffer_width, buffer_height


def to_view_rect(
    box: BoundingBox,
    buffer_width: float,
    buffer_height: float,
    pad_x: float,
    pad_y: float,
    swap_axes: bool = False,
) -> RenderRect:
    """Map a normalized box into buffer pixels and grow it by the padding."""
    if box.is_empty:
        return RenderRect.EMPTY

    sx, sy = _pixel_scale(buffer_width, buffer_height, swap_axes)
    # top edge after flipping is the old max_y
    rect = RenderRect(
        x=box.x * sx,
        y=flip_vertical(box.max_y) * sy,
        width=box.width * sx,
        height=box.height * sy,
    )
    return rect.inset(-pad_x, -pad_y)


def to_view_points(
    joint_map: JointMap,
    joints_of_interest: Iterable[str],
    buffer_width: float,
    buffer_height: float,
    swap_axes: bool = False,
) -> list[RenderPoint]:
    """Map the joints of interest into buffer pixels, in joints-of-interest order."""
    sx, sy = _pixel_scale(buffer_width, buffer_height, swap_axes)
    points: list[RenderPoint] = []
    for joint in joints_of_interest:
        name = getattr(joint, "value", joint)
        location = joint_map.get(name)
        if location is None:
            continue
        x, y = location
        points.append(RenderPoint(x * sx, flip_vertical(y) * sy))
    return points


def overlay_scale(
    buffer_width: float,
    buffer_height: float,
    view_width: float,
    view_height: float,
    rotation_degrees: int = 90,
) -> float:
    """Aspect-fill scale from the (rotated) buffer to the view.

    A zero-size buffer gives a non-finite ratio; that case falls back to 1.0.
    """
    quarter_turn = rotation_degrees % 180 == 90
    src_w, src_h = (buffer_height, buffer_width) if quarter_turn else (buffer_width, buffer_height)
    x_scale = _safe_ratio(view_width, src_w)
    y_scale = _safe_ratio(view_height, src_h)
    scale = max(x_scale, y_scale)
    if not math.isfinite(scale):
        logger.debug(
            "Non-finite overlay scale for buffer %sx%s, view %sx%s; using 1.0",
            buffer_width, buffer_height, view_width, view_height,
        )
        scale = 1.0
    return scale


def _safe_ratio(num: float, den: float) -> float:
    if den == 0:
        if num == 0:
            return math.nan
        return math.copysign(math.inf, num)
    return num / den


def overlay_transform(
    buffer_size: tuple[int, int],
    view_size: tuple[int, int],
    rotation_degrees: int = 90,
    mirror: bool = False,
) -> OverlayTransform:
    bw, bh = buffer_size
    vw, vh = view_size
    return OverlayTransform(
        rotation_degrees=rotation_degrees,
        scale=overlay_scale(bw, bh, vw, vh, rotation_degrees),
        mirror=mirror,
    )
