"""
Assistive-navigation layer built on top of `sight_kit`.

Detection itself stays inside `sight_kit`; this package covers
- detector profile (model, labels, thresholds)
- spoken announcements with explicit cross-frame state
- the navigator that feeds camera frames to a single detection worker and
  hands results to the UI
"""

from __future__ import annotations

from .announcer import AnnouncementState, DebouncedSpeaker, Speaker, format_announcement, new_announcements
from .config import DetectorProfile, load_detector_profile, pipeline_from_profile
from .logging_config import setup_logging
from .navigator import FrameReport, Navigator

__all__ = [
    "AnnouncementState",
    "DebouncedSpeaker",
    "Speaker",
    "format_announcement",
    "new_announcements",
    "DetectorProfile",
    "load_detector_profile",
    "pipeline_from_profile",
    "setup_logging",
    "FrameReport",
    "Navigator",
]
