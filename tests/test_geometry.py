"""
Tests for the frame-to-overlay geometry: filtering, bounding boxes and pixel mapping.
"""
import math

import pytest

from conftest import make_observation
from pose_overlay.models.pose import BoundingBox, Observation, RenderPoint, RenderRect
from pose_overlay.services.geometry import (
    bounding_box,
    filter_joints,
    flip_vertical,
    overlay_scale,
    overlay_transform,
    to_view_points,
    to_view_rect,
)


def assert_box_close(a: BoundingBox, b: BoundingBox):
    assert a.is_empty == b.is_empty
    assert a.x == pytest.approx(b.x)
    assert a.y == pytest.approx(b.y)
    assert a.width == pytest.approx(b.width)
    assert a.height == pytest.approx(b.height)


# --- Keypoint filter ---------------------------------------------------------

@pytest.mark.parametrize("confidence", [0.0, 0.3, 0.6])
def test_filter_rejects_low_confidence_person(confidence):
    obs = make_observation(confidence, nose=(0.5, 0.5, 1.0))
    assert filter_joints(obs, 0.6, 0.1) == {}


def test_filter_handles_missing_joint_data():
    assert filter_joints(Observation(confidence=0.95, joints=None), 0.6, 0.1) == {}
    assert filter_joints(Observation(confidence=0.95, joints={}), 0.6, 0.1) == {}


def test_filter_drops_low_confidence_joints():
    obs = make_observation(0.9, nose=(0.5, 0.2, 0.8), left_wrist=(0.1, 0.9, 0.05))
    assert filter_joints(obs, 0.6, 0.1) == {"nose": (0.5, 0.2)}


def test_filter_point_threshold_is_strict():
    obs = make_observation(0.9, nose=(0.5, 0.5, 0.1), root=(0.5, 0.3, 0.0), neck=(0.5, 0.6, 0.11))
    assert filter_joints(obs, 0.6, 0.1) == {"neck": (0.5, 0.6)}
    assert filter_joints(obs, 0.6, 0.0) == {"nose": (0.5, 0.5), "neck": (0.5, 0.6)}


def test_filter_does_not_mutate_observation(person):
    before = dict(person.joints)
    filter_joints(person, 0.6, 0.1)
    assert dict(person.joints) == before


# --- Bounding box ------------------------------------------------------------

def test_bounding_box_of_empty_map_is_canonical_empty():
    box = bounding_box({})
    assert box is BoundingBox.EMPTY
    assert box.is_empty


def test_bounding_box_single_point_is_zero_size():
    box = bounding_box({"nose": (0.5, 0.2)})
    assert box == BoundingBox(0.5, 0.2, 0.0, 0.0)
    assert not box.is_empty


def test_bounding_box_encloses_all_points():
    box = bounding_box({"a": (0.2, 0.7), "b": (0.6, 0.1), "c": (0.4, 0.9)})
    assert_box_close(box, BoundingBox(0.2, 0.1, 0.4, 0.8))


def test_bounding_box_of_union_is_union_of_boxes():
    a = {"nose": (0.3, 0.8), "left_wrist": (0.1, 0.5)}
    b = {"root": (0.5, 0.4), "right_ankle": (0.7, 0.05)}
    assert_box_close(bounding_box({**a, **b}), bounding_box(a).union(bounding_box(b)))
    assert_box_close(bounding_box(a), bounding_box(a).union(bounding_box({})))


def test_spec_scenario_end_to_end():
    obs = make_observation(0.9, nose=(0.5, 0.2, 0.8), leftWrist=(0.1, 0.9, 0.05))
    joint_map = filter_joints(obs, detection_threshold=0.6, point_threshold=0.1)
    assert joint_map == {"nose": (0.5, 0.2)}
    assert bounding_box(joint_map) == BoundingBox.at(0.5, 0.2)


# --- Coordinate mapping ------------------------------------------------------

def test_flip_vertical():
    assert flip_vertical(0.0) == 1.0
    assert flip_vertical(1.0) == 0.0
    assert flip_vertical(0.25) == 0.75


def test_empty_box_maps_to_empty_rect():
    rect = to_view_rect(BoundingBox.EMPTY, 1920, 1080, 20, 50)
    assert rect is RenderRect.EMPTY


def test_centre_point_round_trip_without_padding():
    rect = to_view_rect(BoundingBox.at(0.5, 0.5), 1920, 1080, 0, 0)
    assert rect == RenderRect(960.0, 540.0, 0.0, 0.0)
    points = to_view_points({"nose": (0.5, 0.5)}, ["nose"], 1920, 1080)
    assert points == [RenderPoint(960.0, 540.0)]


def test_rect_is_flipped_scaled_and_padded():
    rect = to_view_rect(BoundingBox(0.1, 0.2, 0.3, 0.4), 100, 100, 0, 0)
    assert rect.x == pytest.approx(10)
    assert rect.y == pytest.approx(40)
    assert rect.width == pytest.approx(30)
    assert rect.height == pytest.approx(40)

    padded = to_view_rect(BoundingBox(0.1, 0.2, 0.3, 0.4), 100, 100, 20, 50)
    assert padded.x == pytest.approx(-10)
    assert padded.y == pytest.approx(-10)
    assert padded.width == pytest.approx(70)
    assert padded.height == pytest.approx(140)


def test_points_flip_exactly_once():
    points = to_view_points({"nose": (0.25, 0.2)}, ["nose"], 100, 200)
    assert points[0].x == pytest.approx(25)
    assert points[0].y == pytest.approx(160)


def test_swap_axes_pairs_width_with_height():
    points = to_view_points({"nose": (0.5, 0.25)}, ["nose"], 100, 200, swap_axes=True)
    assert points[0].x == pytest.approx(100)
    assert points[0].y == pytest.approx(75)

    rect = to_view_rect(BoundingBox.at(0.5, 0.25), 100, 200, 0, 0, swap_axes=True)
    assert rect.x == pytest.approx(100)
    assert rect.y == pytest.approx(75)


def test_only_joints_of_interest_are_mapped_in_order():
    joint_map = {"nose": (0.5, 0.5), "root": (0.5, 0.0), "left_knee": (0.2, 0.2)}
    points = to_view_points(joint_map, ["root", "left_wrist", "nose"], 10, 10)
    assert points == [RenderPoint(5.0, 10.0), RenderPoint(5.0, 5.0)]


# --- Global transform --------------------------------------------------------

def test_overlay_scale_portrait_view():
    scale = overlay_scale(1080, 1920, 390, 844, rotation_degrees=90)
    assert scale == pytest.approx(844 / 1080)
    assert scale == pytest.approx(0.7815, abs=1e-4)


def test_overlay_scale_zero_buffer_clamps_to_one():
    assert overlay_scale(1080, 0, 390, 844, rotation_degrees=90) == 1.0
    assert overlay_scale(0, 0, 390, 844, rotation_degrees=90) == 1.0


def test_overlay_scale_without_rotation_pairs_matching_axes():
    assert overlay_scale(1920, 1080, 960, 540, rotation_degrees=0) == pytest.approx(0.5)
    assert overlay_scale(1920, 1080, 960, 1080, rotation_degrees=180) == pytest.approx(1.0)


def test_overlay_transform_is_always_finite():
    transform = overlay_transform((0, 0), (390, 844), rotation_degrees=90, mirror=True)
    assert math.isfinite(transform.scale)
    assert transform.rotation_degrees == 90
    assert transform.mirror is True
