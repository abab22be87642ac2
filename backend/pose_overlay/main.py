# Live pose overlay entry point

from __future__ import annotations

import argparse
import logging
import sys
import time
from typing import Optional

import cv2

from pose_overlay.config import OverlayConfig, parse_view_size
from pose_overlay.services.pipeline import FrameProcessor, PosePipeline
from pose_overlay.services.pose import AVAILABLE_BACKENDS, get_pose_detector
from pose_overlay.services.rendering import OverlayRenderer
from pose_overlay.services.video import CaptureThread, FrameSource, LatestFrameSlot

logger = logging.getLogger(__name__)

WINDOW_NAME = "Pose Overlay"
QUIT_KEYS = {ord("q"), 27}  # q, Esc


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pose-overlay",
        description="Live preview with a bounding box and joint markers for every detected person.",
    )
    p.add_argument("--source", default="0", help="Camera index or video file path (default: 0)")
    p.add_argument("--backend", default=None, help=f"Pose backend: {', '.join(AVAILABLE_BACKENDS)} or a .pt file")
    p.add_argument("--rotation", type=int, default=None, help="Clockwise overlay rotation: 0, 90, 180 or 270")
    p.add_argument("--mirror", action="store_true", default=None, help="Mirror the preview horizontally")
    p.add_argument("--joints", default=None, help="Joint preset (arms, right_side, all) or comma-separated joint names")
    p.add_argument("--view", default=None, help="Display size as WIDTHxHEIGHT (default: rotated source size)")
    p.add_argument("--detection-threshold", type=float, default=None, help="Minimum person confidence")
    p.add_argument("--point-threshold", type=float, default=None, help="Minimum joint confidence")
    p.add_argument("--log-level", default="INFO", help="Logging level")
    return p


def config_from_args(args: argparse.Namespace) -> OverlayConfig:
    view_w = view_h = None
    if args.view:
        view_w, view_h = parse_view_size(args.view)
    return OverlayConfig.from_env(
        detection_min_confidence=args.detection_threshold,
        point_min_confidence=args.point_threshold,
        joints_of_interest=args.joints,
        display_rotation=args.rotation,
        mirror=args.mirror,
        view_width=view_w,
        view_height=view_h,
    )


def run_display_loop(capture: CaptureThread, renderer: OverlayRenderer) -> None:
    """Show frames with the committed overlay until the stream ends or the user quits.

    Runs on the main thread; OpenCV windows must be driven from there.
    """
    while True:
        frame = capture.latest_frame
        if frame is not None:
            cv2.imshow(WINDOW_NAME, renderer.compose(frame))
        key = cv2.waitKey(15) & 0xFF
        if key in QUIT_KEYS:
            logger.info("Quit requested")
            break
        if not capture.is_alive():
            break
        if frame is None:
            time.sleep(0.01)
    cv2.destroyAllWindows()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(levelname)s | %(name)s | %(message)s",
    )

    try:
        config = config_from_args(args)
        source = FrameSource(args.source)
    except ValueError as exc:
        logger.error("%s", exc)
        return 2

    metadata = source.get_metadata()
    logger.info(
        "Opened source %s: %dx%d, %.1f fps",
        metadata["source"], metadata["width"], metadata["height"], metadata["fps"],
    )

    buffer_size = source.buffer_size
    view_size = config.view_size(buffer_size)
    pipeline = PosePipeline(config)
    initial = pipeline.build_snapshot([], buffer_size, view_size)
    renderer = OverlayRenderer(
        view_size,
        transform=initial.transform,
        surface_size=initial.surface_size,
        joint_radius=config.joint_radius,
        corner_radius=config.box_corner_radius,
    )

    try:
        detector = get_pose_detector(args.backend)
    except (ValueError, RuntimeError) as exc:
        logger.error("Cannot create pose detector: %s", exc)
        source.release()
        return 2

    slot = LatestFrameSlot()
    capture = CaptureThread(source, slot)
    processor = FrameProcessor(detector, pipeline, renderer, slot, view_size=view_size)

    start_time = time.time()
    processor.start()
    capture.start()
    try:
        run_display_loop(capture, renderer)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        capture.stop()
        slot.close()
        capture.join(timeout=5)
        processor.stop()
        processor.join(timeout=5)
        detector.close()

    logger.info(
        "Session complete in %.1fs: %s",
        time.time() - start_time, processor.summary(),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
