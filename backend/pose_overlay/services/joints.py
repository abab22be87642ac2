# Joint vocabulary — the named body landmarks and the joints-of-interest presets.
# Adding a model: map its keypoint indices onto JointName below.

from __future__ import annotations

from enum import Enum

from pose_overlay.models.pose import Point


class JointName(str, Enum):
    NOSE = "nose"
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    LEFT_EAR = "left_ear"
    RIGHT_EAR = "right_ear"
    NECK = "neck"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    ROOT = "root"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


# Joints drawn on the overlay; everything else is filtered but not shown.
JOINT_PRESETS: dict[str, tuple[JointName, ...]] = {
    "arms": (
        JointName.NOSE,
        JointName.RIGHT_ELBOW,
        JointName.LEFT_ELBOW,
        JointName.LEFT_WRIST,
        JointName.RIGHT_WRIST,
        JointName.ROOT,
    ),
    "right_side": (
        JointName.NOSE,
        JointName.RIGHT_ELBOW,
        JointName.RIGHT_SHOULDER,
        JointName.RIGHT_HIP,
        JointName.RIGHT_KNEE,
        JointName.RIGHT_ANKLE,
    ),
    "all": tuple(JointName),
}

DEFAULT_JOINT_PRESET = "arms"

# MediaPipe Pose landmark index -> joint
MEDIAPIPE_LANDMARKS: dict[int, JointName] = {
    0: JointName.NOSE,
    2: JointName.LEFT_EYE,
    5: JointName.RIGHT_EYE,
    7: JointName.LEFT_EAR,
    8: JointName.RIGHT_EAR,
    11: JointName.LEFT_SHOULDER,
    12: JointName.RIGHT_SHOULDER,
    13: JointName.LEFT_ELBOW,
    14: JointName.RIGHT_ELBOW,
    15: JointName.LEFT_WRIST,
    16: JointName.RIGHT_WRIST,
    23: JointName.LEFT_HIP,
    24: JointName.RIGHT_HIP,
    25: JointName.LEFT_KNEE,
    26: JointName.RIGHT_KNEE,
    27: JointName.LEFT_ANKLE,
    28: JointName.RIGHT_ANKLE,
}

# COCO-17 keypoint order (YOLO pose models)
COCO17_KEYPOINTS: tuple[JointName, ...] = (
    JointName.NOSE,
    JointName.LEFT_EYE,
    JointName.RIGHT_EYE,
    JointName.LEFT_EAR,
    JointName.RIGHT_EAR,
    JointName.LEFT_SHOULDER,
    JointName.RIGHT_SHOULDER,
    JointName.LEFT_ELBOW,
    JointName.RIGHT_ELBOW,
    JointName.LEFT_WRIST,
    JointName.RIGHT_WRIST,
    JointName.LEFT_HIP,
    JointName.RIGHT_HIP,
    JointName.LEFT_KNEE,
    JointName.RIGHT_KNEE,
    JointName.LEFT_ANKLE,
    JointName.RIGHT_ANKLE,
)

# Joints neither model reports directly, built from the midpoint of a pair
MIDPOINT_JOINTS: dict[JointName, tuple[JointName, JointName]] = {
    JointName.NECK: (JointName.LEFT_SHOULDER, JointName.RIGHT_SHOULDER),
    JointName.ROOT: (JointName.LEFT_HIP, JointName.RIGHT_HIP),
}


def add_midpoint_joints(joints: dict[str, Point]) -> dict[str, Point]:
    """Add neck/root midpoints in place; confidence is the weaker of the pair."""
    for joint, (a_name, b_name) in MIDPOINT_JOINTS.items():
        a = joints.get(a_name.value)
        b = joints.get(b_name.value)
        if a is None or b is None:
            continue
        joints[joint.value] = Point(
            x=(a.x + b.x) / 2.0,
            y=(a.y + b.y) / 2.0,
            confidence=min(a.confidence, b.confidence),
        )
    return joints


def parse_joints(value: str | list[str] | tuple[str, ...]) -> tuple[JointName, ...]:
    """Resolve a preset name or a list of joint names.

    Strings may be a preset ("arms") or comma-separated names ("nose,root").
    """
    if isinstance(value, str):
        key = value.strip().lower()
        if key in JOINT_PRESETS:
            return JOINT_PRESETS[key]
        names = [part.strip().lower() for part in key.split(",") if part.strip()]
    else:
        names = [
            part.value if isinstance(part, JointName) else str(part).strip().lower()
            for part in value
        ]

    joints: list[JointName] = []
    for name in names:
        try:
            joint = JointName(name)
        except ValueError:
            raise ValueError(
                f"Unknown joint: {name!r}. Use one of {sorted(j.value for j in JointName)} "
                f"or a preset from {sorted(JOINT_PRESETS)}."
            ) from None
        if joint not in joints:
            joints.append(joint)
    if not joints:
        raise ValueError("At least one joint of interest is required")
    return tuple(joints)
