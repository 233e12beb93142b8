"""
Screen frame acquisition for screen sync.

Grabs the desktop with Pillow's ImageGrab and downscales it with OpenCV to a
small analysis width; dominant-color extraction does not need more than
~160 px and the downscale keeps the capture loop well inside its frame
budget.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np
from PIL import ImageGrab

from ..const import CAPTURE_WIDTH

logger = logging.getLogger(__name__)


class FrameSource(ABC):
    """Producer of RGB frames for the sync loop."""

    @abstractmethod
    def acquire_frame(self) -> Optional[np.ndarray]:
        """Return an (H, W, 3) uint8 RGB frame, or None if none is available."""

    def reinitialize(self) -> None:
        """Rebuild capture resources after a failure."""

    def release(self) -> None:
        """Release capture resources; called when the sync session ends."""


@dataclass
class FrameSourceConfig:
    """Configuration for screen capture"""

    capture_width: int = CAPTURE_WIDTH  # Frames are downscaled to this width
    bbox: Optional[Tuple[int, int, int, int]] = None  # (left, top, right, bottom), None = full screen
    all_screens: bool = False  # Windows only: capture every monitor


class ScreenFrameSource(FrameSource):
    """Desktop capture via Pillow, downscaled with OpenCV."""

    def __init__(self, config: Optional[FrameSourceConfig] = None):
        self.config = config or FrameSourceConfig()
        self.source_size: Optional[Tuple[int, int]] = None
        self.target_size: Optional[Tuple[int, int]] = None
        self.frames_captured = 0
        self.reinit_count = 0

    def _grab(self):
        return ImageGrab.grab(bbox=self.config.bbox, all_screens=self.config.all_screens)

    def acquire_frame(self) -> Optional[np.ndarray]:
        image = self._grab()
        if image is None:
            return None

        frame = np.asarray(image.convert("RGB"))
        if frame.ndim != 3 or frame.shape[0] == 0 or frame.shape[1] == 0:
            return None

        size = (frame.shape[1], frame.shape[0])
        if size != self.source_size:
            if self.source_size is not None:
                logger.info(f"Screen geometry changed {self.source_size} -> {size}, reconfiguring capture")
            self._configure(size)

        if self.target_size != size:
            frame = cv2.resize(frame, self.target_size, interpolation=cv2.INTER_AREA)

        self.frames_captured += 1
        return frame

    def _configure(self, size: Tuple[int, int]) -> None:
        width, height = size
        target_width = min(self.config.capture_width, width)
        target_height = max(1, round(height * target_width / width))
        self.source_size = size
        self.target_size = (target_width, target_height)
        logger.debug(f"Capture configured: {width}x{height} -> {target_width}x{target_height}")

    def reinitialize(self) -> None:
        self.source_size = None
        self.target_size = None
        self.reinit_count += 1
        logger.info(f"Screen capture reinitialized (#{self.reinit_count})")

    def release(self) -> None:
        self.source_size = None
        self.target_size = None
        logger.debug(f"Screen capture released after {self.frames_captured} frames")
