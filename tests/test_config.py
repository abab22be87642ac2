"""
Tests for overlay configuration and its environment/CLI overrides.
"""
import pytest
from pydantic import ValidationError

from pose_overlay.config import OverlayConfig, parse_view_size
from pose_overlay.main import build_parser, config_from_args
from pose_overlay.services.joints import JOINT_PRESETS, JointName


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "POSE_DETECTION_MIN_CONFIDENCE", "POSE_POINT_MIN_CONFIDENCE", "POSE_JOINTS",
        "POSE_DISPLAY_ROTATION", "POSE_MIRROR", "POSE_VIEW_SIZE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    cfg = OverlayConfig()
    assert cfg.detection_min_confidence == 0.6
    assert cfg.point_min_confidence == 0.1
    assert cfg.joints_of_interest == JOINT_PRESETS["arms"]
    assert (cfg.box_padding_x, cfg.box_padding_y) == (20.0, 50.0)
    assert cfg.display_rotation == 90
    assert cfg.mirror is False


def test_config_is_read_only():
    cfg = OverlayConfig()
    with pytest.raises(ValidationError):
        cfg.point_min_confidence = 0.5


@pytest.mark.parametrize("field, value", [
    ("detection_min_confidence", 1.5),
    ("point_min_confidence", -0.1),
    ("display_rotation", 45),
    ("joints_of_interest", "tail"),
])
def test_invalid_values_are_rejected(field, value):
    with pytest.raises(ValidationError):
        OverlayConfig(**{field: value})


def test_view_size_defaults_to_rotated_buffer():
    assert OverlayConfig().view_size((1920, 1080)) == (1080, 1920)
    assert OverlayConfig(display_rotation=0).view_size((1920, 1080)) == (1920, 1080)
    assert OverlayConfig(view_width=390, view_height=844).view_size((1920, 1080)) == (390, 844)


def test_from_env(monkeypatch):
    monkeypatch.setenv("POSE_DETECTION_MIN_CONFIDENCE", "0.4")
    monkeypatch.setenv("POSE_JOINTS", "nose,root")
    monkeypatch.setenv("POSE_MIRROR", "true")
    monkeypatch.setenv("POSE_VIEW_SIZE", "390x844")
    cfg = OverlayConfig.from_env()
    assert cfg.detection_min_confidence == pytest.approx(0.4)
    assert cfg.joints_of_interest == (JointName.NOSE, JointName.ROOT)
    assert cfg.mirror is True
    assert (cfg.view_width, cfg.view_height) == (390, 844)


def test_overrides_win_over_env(monkeypatch):
    monkeypatch.setenv("POSE_DISPLAY_ROTATION", "270")
    assert OverlayConfig.from_env(display_rotation=0).display_rotation == 0
    assert OverlayConfig.from_env(display_rotation=None).display_rotation == 270


def test_parse_view_size():
    assert parse_view_size("640X480") == (640, 480)
    for bad in ("640", "axb", "0x10"):
        with pytest.raises(ValueError):
            parse_view_size(bad)


def test_cli_flags_build_config():
    args = build_parser().parse_args([
        "--rotation", "0", "--joints", "right_side", "--point-threshold", "0.2", "--view", "320x240",
    ])
    cfg = config_from_args(args)
    assert cfg.display_rotation == 0
    assert cfg.joints_of_interest == JOINT_PRESETS["right_side"]
    assert cfg.point_min_confidence == pytest.approx(0.2)
    assert cfg.view_size((1920, 1080)) == (320, 240)
    assert cfg.mirror is False


@pytest.mark.parametrize("sizes", [{"view_width": 390}, {"view_height": 844}])
def test_view_size_needs_both_dimensions(sizes):
    with pytest.raises(ValidationError):
        OverlayConfig(**sizes)
