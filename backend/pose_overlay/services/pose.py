# Pose detection services — turn a frame into per-person Observations.
# Swapping models: subclass PoseDetector and register it in AVAILABLE_BACKENDS.

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Sequence

import cv2
import numpy as np

from pose_overlay.models.pose import Observation, Point
from pose_overlay.services.joints import COCO17_KEYPOINTS, MEDIAPIPE_LANDMARKS, add_midpoint_joints

logger = logging.getLogger(__name__)

# Available pose backends
AVAILABLE_BACKENDS = {
    "mediapipe": ("mediapipe", None),
    "yolo": ("yolo", "yolov8n-pose.pt"),
    "yolo-medium": ("yolo", "yolov8m-pose.pt"),
}


class DetectionError(RuntimeError):
    """The pose model failed on a frame. The frame should be skipped."""


class PoseDetector(ABC):
    """Model adapter interface.

    ``detect`` takes a BGR frame (H, W, 3 uint8) and returns one Observation
    per detected person, in bottom-left-origin normalized coordinates.
    """

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def detect(self, frame_bgr: np.ndarray) -> list[Observation]: ...

    def close(self) -> None:
        pass


def observation_from_landmarks(landmarks: Sequence[Any]) -> Observation | None:
    """Convert a MediaPipe landmark list into an Observation.

    Each landmark needs ``x``, ``y`` (top-left-origin, normalized) and
    ``visibility``. Person confidence is the mean visibility of the mapped
    joints since MediaPipe does not report one.
    """
    joints: dict[str, Point] = {}
    for idx, joint in MEDIAPIPE_LANDMARKS.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        joints[joint.value] = Point(
            x=float(lm.x),
            y=1.0 - float(lm.y),
            confidence=float(getattr(lm, "visibility", 0.0) or 0.0),
        )
    if not joints:
        return None

    confidence = sum(p.confidence for p in joints.values()) / len(joints)
    return Observation(confidence=confidence, joints=add_midpoint_joints(joints))


def observations_from_keypoints(
    keypoints_xyn: np.ndarray,
    keypoint_conf: np.ndarray | None,
    person_conf: np.ndarray,
) -> list[Observation]:
    """Convert COCO-17 keypoint arrays into Observations.

    Args:
        keypoints_xyn: (N, 17, 2) normalized, top-left-origin locations
        keypoint_conf: (N, 17) per-keypoint confidence, or None if the model
            does not report it (every keypoint then gets confidence 1.0)
        person_conf: (N,) person box confidence
    """
    keypoints_xyn = np.asarray(keypoints_xyn, dtype=np.float32)
    person_conf = np.asarray(person_conf, dtype=np.float32).reshape(-1)
    if keypoints_xyn.size == 0:
        return []
    if keypoint_conf is None:
        keypoint_conf = np.ones(keypoints_xyn.shape[:2], dtype=np.float32)
    keypoint_conf = np.asarray(keypoint_conf, dtype=np.float32)

    observations: list[Observation] = []
    for person_idx in range(keypoints_xyn.shape[0]):
        joints: dict[str, Point] = {}
        for kp_idx, joint in enumerate(COCO17_KEYPOINTS[: keypoints_xyn.shape[1]]):
            x, y = keypoints_xyn[person_idx, kp_idx]
            conf = float(keypoint_conf[person_idx, kp_idx])
            # YOLO reports undetected keypoints at (0, 0)
            if x == 0.0 and y == 0.0:
                conf = 0.0
            joints[joint.value] = Point(x=float(x), y=1.0 - float(y), confidence=conf)
        observations.append(
            Observation(
                confidence=float(person_conf[person_idx]),
                joints=add_midpoint_joints(joints),
            )
        )
    return observations


class MediaPipePoseService(PoseDetector):
    """Single-person pose estimation using MediaPipe Pose."""

    def __init__(
        self,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ) -> None:
        try:
            import mediapipe as mp
        except ImportError as e:
            raise RuntimeError("MediaPipe is not installed. Install it with: pip install mediapipe") from e

        logger.info("Initialising MediaPipe Pose (complexity=%d)", model_complexity)
        self.pose = mp.solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=model_complexity,
            enable_segmentation=False,
            smooth_landmarks=True,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )

    def name(self) -> str:
        return "mediapipe"

    def detect(self, frame_bgr: np.ndarray) -> list[Observation]:
        try:
            image_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
            results = self.pose.process(image_rgb)
        except Exception as exc:
            raise DetectionError(f"MediaPipe Pose failed: {exc}") from exc
        if not results.pose_landmarks:
            return []

        observation = observation_from_landmarks(results.pose_landmarks.landmark)
        return [observation] if observation is not None else []

    def close(self) -> None:
        self.pose.close()


class YoloPoseService(PoseDetector):
    """Multi-person pose estimation using a YOLO pose model."""

    def __init__(self, model_path: str = "yolov8n-pose.pt") -> None:
        from ultralytics import YOLO

        logger.info("Loading YOLO pose model: %s", model_path)
        self.model = YOLO(model_path)
        self.model_path = model_path

    def name(self) -> str:
        return "yolo"

    def detect(self, frame_bgr: np.ndarray) -> list[Observation]:
        try:
            results = self.model(frame_bgr, verbose=False)[0]
        except Exception as exc:
            raise DetectionError(f"YOLO pose inference failed: {exc}") from exc

        keypoints = results.keypoints
        if keypoints is None or results.boxes is None or len(results.boxes) == 0:
            return []

        conf = keypoints.conf.cpu().numpy() if keypoints.conf is not None else None
        return observations_from_keypoints(
            keypoints.xyn.cpu().numpy(),
            conf,
            results.boxes.conf.cpu().numpy(),
        )


def get_pose_detector(backend: str | None = None) -> PoseDetector:
    """Create a detector by backend key.

    If ``backend`` is None, uses the POSE_BACKEND env var or defaults to
    'mediapipe'. Unknown keys ending in ``.pt`` are loaded as YOLO weights.
    """
    if backend is None:
        backend = os.getenv("POSE_BACKEND", "mediapipe")

    if backend in AVAILABLE_BACKENDS:
        kind, model_path = AVAILABLE_BACKENDS[backend]
    elif backend.endswith(".pt"):
        kind, model_path = "yolo", backend
    else:
        raise ValueError(f"Unknown pose backend: {backend!r}. Use one of {sorted(AVAILABLE_BACKENDS)}.")

    if kind == "mediapipe":
        return MediaPipePoseService()
    return YoloPoseService(model_path)
