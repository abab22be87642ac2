# Per-frame pose data — observations in, render primitives out.

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import ClassVar, Mapping, Optional

import numpy as np

# Normalized joint locations that survived filtering, keyed by joint name.
JointMap = dict[str, tuple[float, float]]


@dataclass(frozen=True)
class Point:
    """A normalized keypoint.

    Coordinates follow the bottom-left-origin convention: (0, 0) is the
    bottom-left corner of the frame, (1, 1) the top-right.
    """

    x: float
    y: float
    confidence: float


@dataclass(frozen=True)
class Observation:
    """One detected person in one frame."""

    confidence: float
    joints: Optional[Mapping[str, Point]] = field(default_factory=dict)


@dataclass(frozen=True)
class BoundingBox:
    """Normalized axis-aligned rectangle.

    ``BoundingBox.EMPTY`` is the null box; it is the identity for ``union``.
    A zero-size box anchored at a point is not empty.
    """

    x: float
    y: float
    width: float
    height: float
    empty: bool = False

    EMPTY: ClassVar[BoundingBox]

    @property
    def is_empty(self) -> bool:
        return self.empty

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @classmethod
    def at(cls, x: float, y: float) -> BoundingBox:
        """Zero-area box anchored at a point."""
        return cls(x, y, 0.0, 0.0)

    def union(self, other: BoundingBox) -> BoundingBox:
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        x0 = min(self.x, other.x)
        y0 = min(self.y, other.y)
        x1 = max(self.max_x, other.max_x)
        y1 = max(self.max_y, other.max_y)
        return BoundingBox(x0, y0, x1 - x0, y1 - y0)


BoundingBox.EMPTY = BoundingBox(0.0, 0.0, 0.0, 0.0, empty=True)


@dataclass(frozen=True)
class RenderRect:
    """Pixel-space rectangle, top-left origin."""

    x: float
    y: float
    width: float
    height: float
    empty: bool = False

    EMPTY: ClassVar[RenderRect]

    @property
    def is_empty(self) -> bool:
        return self.empty

    def inset(self, dx: float, dy: float) -> RenderRect:
        """Shrink by dx/dy on each side; negative values grow the rect."""
        if self.is_empty:
            return self
        return RenderRect(
            self.x + dx,
            self.y + dy,
            self.width - 2 * dx,
            self.height - 2 * dy,
        )


RenderRect.EMPTY = RenderRect(0.0, 0.0, 0.0, 0.0, empty=True)


@dataclass(frozen=True)
class RenderPoint:
    x: float
    y: float


@dataclass(frozen=True)
class PersonOverlay:
    box: RenderRect
    points: tuple[RenderPoint, ...] = ()


# cos/sin for quarter turns, exact so 90° maps axes without float noise
_QUARTER_TURNS = {0: (1.0, 0.0), 90: (0.0, 1.0), 180: (-1.0, 0.0), 270: (0.0, -1.0)}


@dataclass(frozen=True)
class OverlayTransform:
    """Global rotate/scale/mirror applied to the whole overlay surface.

    Positive rotation is clockwise on screen (image y axis points down).
    """

    rotation_degrees: int = 0
    scale: float = 1.0
    mirror: bool = False

    @property
    def is_quarter_turn(self) -> bool:
        return self.rotation_degrees % 180 == 90

    def output_size(self, buffer_size: tuple[int, int]) -> tuple[int, int]:
        """Size of the buffer once rotated (before scaling)."""
        w, h = buffer_size
        return (h, w) if self.is_quarter_turn else (w, h)

    def matrix(
        self,
        buffer_size: tuple[int, int],
        view_size: tuple[int, int],
    ) -> np.ndarray:
        """2x3 affine matrix mapping buffer pixels into view pixels.

        The buffer centre lands on the view centre.
        """
        angle = self.rotation_degrees % 360
        if angle in _QUARTER_TURNS:
            cos_a, sin_a = _QUARTER_TURNS[angle]
        else:
            rad = math.radians(angle)
            cos_a, sin_a = math.cos(rad), math.sin(rad)

        sx = -self.scale if self.mirror else self.scale
        sy = self.scale
        linear = np.array(
            [[cos_a * sx, -sin_a * sy], [sin_a * sx, cos_a * sy]],
            dtype=np.float64,
        )

        bw, bh = buffer_size
        vw, vh = view_size
        buffer_centre = np.array([bw / 2.0, bh / 2.0])
        view_centre = np.array([vw / 2.0, vh / 2.0])
        offset = view_centre - linear @ buffer_centre
        return np.hstack([linear, offset.reshape(2, 1)])


@dataclass(frozen=True)
class OverlaySnapshot:
    """Everything the renderer needs to draw one frame."""

    people: tuple[PersonOverlay, ...] = ()
    transform: OverlayTransform = field(default_factory=OverlayTransform)
    frame_index: int = -1
    # (width, height) of the pixel space the primitives were mapped into;
    # None means the frame's own size
    surface_size: Optional[tuple[int, int]] = None

    @property
    def is_empty(self) -> bool:
        return not self.people
