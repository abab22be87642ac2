# Overlay configuration — thresholds, joints of interest and display geometry.
# Read-only once built; the pipeline receives it at construction.

from __future__ import annotations

import logging
import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pose_overlay.models.pose import OverlayTransform
from pose_overlay.services.joints import DEFAULT_JOINT_PRESET, JOINT_PRESETS, JointName, parse_joints

logger = logging.getLogger(__name__)

# Environment variable -> config field
ENV_FIELDS = {
    "POSE_DETECTION_MIN_CONFIDENCE": "detection_min_confidence",
    "POSE_POINT_MIN_CONFIDENCE": "point_min_confidence",
    "POSE_JOINTS": "joints_of_interest",
    "POSE_BOX_PADDING_X": "box_padding_x",
    "POSE_BOX_PADDING_Y": "box_padding_y",
    "POSE_SWAP_BUFFER_AXES": "swap_buffer_axes",
    "POSE_DISPLAY_ROTATION": "display_rotation",
    "POSE_MIRROR": "mirror",
    "POSE_JOINT_RADIUS": "joint_radius",
}

ALLOWED_ROTATIONS = (0, 90, 180, 270)


def parse_view_size(value: str) -> tuple[int, int]:
    """Parse "WIDTHxHEIGHT" (e.g. "390x844")."""
    try:
        w, h = value.lower().split("x", 1)
        size = int(w), int(h)
    except ValueError:
        raise ValueError(f"Invalid view size {value!r}, expected WIDTHxHEIGHT") from None
    if size[0] <= 0 or size[1] <= 0:
        raise ValueError(f"View size must be positive, got {value!r}")
    return size


class OverlayConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    detection_min_confidence: float = Field(0.6, ge=0.0, le=1.0, description="Person confidence must exceed this")
    # Low on purpose: the body-pose model reports small per-point confidences
    point_min_confidence: float = Field(0.1, ge=0.0, le=1.0, description="Joint confidence must exceed this")
    joints_of_interest: tuple[JointName, ...] = Field(JOINT_PRESETS[DEFAULT_JOINT_PRESET])

    box_padding_x: float = Field(20.0, ge=0.0, description="Pixels added on the left and right of each box")
    box_padding_y: float = Field(50.0, ge=0.0, description="Pixels added above and below each box")
    swap_buffer_axes: bool = Field(False, description="Scale x by buffer height and y by buffer width")

    display_rotation: int = Field(90, description="Clockwise overlay rotation in degrees")
    mirror: bool = Field(False, description="Mirror the overlay horizontally")
    view_width: int | None = Field(None, gt=0)
    view_height: int | None = Field(None, gt=0)

    joint_radius: int = Field(10, ge=1)
    box_corner_radius: int = Field(10, ge=0)

    @field_validator("joints_of_interest", mode="before")
    @classmethod
    def parse_joints_of_interest(cls, value: Any) -> tuple[JointName, ...]:
        return parse_joints(value)

    @field_validator("display_rotation")
    @classmethod
    def check_rotation(cls, value: int) -> int:
        value %= 360
        if value not in ALLOWED_ROTATIONS:
            raise ValueError(f"display_rotation must be one of {ALLOWED_ROTATIONS}")
        return value

    @model_validator(mode="after")
    def check_view_size(self) -> OverlayConfig:
        if (self.view_width is None) != (self.view_height is None):
            raise ValueError("view_width and view_height must be set together")
        return self

    def view_size(self, buffer_size: tuple[int, int]) -> tuple[int, int]:
        """Display size; defaults to the buffer size after rotation."""
        if self.view_width and self.view_height:
            return self.view_width, self.view_height
        return OverlayTransform(rotation_degrees=self.display_rotation).output_size(buffer_size)

    @classmethod
    def from_env(cls, **overrides: Any) -> OverlayConfig:
        """Build config from POSE_* environment variables.

        Keyword overrides (e.g. CLI flags) win; None values are ignored.
        """
        values: dict[str, Any] = {}
        for env_name, field_name in ENV_FIELDS.items():
            raw = os.getenv(env_name)
            if raw is not None and raw != "":
                values[field_name] = raw

        view = os.getenv("POSE_VIEW_SIZE")
        if view:
            values["view_width"], values["view_height"] = parse_view_size(view)

        values.update({k: v for k, v in overrides.items() if v is not None})
        config = cls(**values)
        logger.debug("Overlay config: %s", config)
        return config
