"""
pose_overlay - live body-pose overlay.

Runs a pose detector on each video frame and draws a padded bounding box and
joint markers for every detected person on a live preview.
"""

__version__ = "1.0.0"
