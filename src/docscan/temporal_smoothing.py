"""
Temporal smoothing for live document detection.

Frame-to-frame detection is noisy: a hand passing over the page or a
reflection makes the outline vanish for a frame or two. TemporalSmoother
keeps the last confident detection alive for a few frames so the preview
overlay does not flicker.

STATES (one transition per processed frame):
  NEW     detection confidence >= min_confidence_to_update
          → replace cache, reset miss counter
  CACHED  no good detection, cache present, misses <= keep_frames
          → emit cached detection
  NONE    misses exceed keep_frames (or nothing was ever cached)
          → clear cache, emit nothing

LivePreviewController drives the detector from a display-refresh callback:
it skips frames, throttles to a target FPS and drops anything it cannot
process immediately. There is no frame queue; the most recent frame wins.
"""

import time
from typing import Callable, Iterable, Iterator, Optional

import numpy as np
from loguru import logger

from docscan.config import detection_config, load_config, smoothing_config
from docscan.edge_detector import EdgeDetector, downscale_for_preview
from docscan.models import (
    DetectedEdge,
    DetectionState,
    SmoothedDetection,
    SmoothingConfig,
    SmoothingState,
)


class TemporalSmoother:
    """Three-state cache over a stream of per-frame detections."""

    def __init__(self, config: Optional[SmoothingConfig] = None):
        self.config = config or SmoothingConfig()
        self.state = SmoothingState()

    def reset(self) -> None:
        self.state = SmoothingState()

    def update(self, detection: Optional[DetectedEdge]) -> SmoothedDetection:
        s = self.state
        cfg = self.config

        if detection is not None and detection.confidence >= cfg.min_confidence_to_update:
            s.last_good_detection = detection
            s.frames_without_good_detection = 0
            s.state = DetectionState.NEW
            return self._emit(detection, using_cache=False)

        s.frames_without_good_detection += 1
        if s.last_good_detection is not None and s.frames_without_good_detection <= cfg.keep_frames:
            s.state = DetectionState.CACHED
            return self._emit(s.last_good_detection, using_cache=True)

        if s.last_good_detection is not None:
            logger.debug(
                f"[Smoother] Dropping cached detection after "
                f"{s.frames_without_good_detection} missed frames"
            )
        s.last_good_detection = None
        s.state = DetectionState.NONE
        return self._emit(None, using_cache=False)

    def _emit(self, detection: Optional[DetectedEdge], using_cache: bool) -> SmoothedDetection:
        last = self.state.last_good_detection
        return SmoothedDetection(
            detection=detection,
            state=self.state.state,
            last_confidence=last.confidence if last is not None else 0.0,
            using_cache=using_cache,
        )


class LivePreviewController:
    """
    Runs fast detection + smoothing over a live frame stream.

    Call submit_frame() from the display-refresh callback. It returns a
    SmoothedDetection when the frame was processed, or None when the frame
    was dropped (skipped, throttled, session stopped or already busy).

        with LivePreviewController() as preview:
            for frame in camera:
                result = preview.submit_frame(frame)
    """

    def __init__(
        self,
        detector: Optional[EdgeDetector] = None,
        config: Optional[SmoothingConfig] = None,
        clock: Callable[[], float] = time.monotonic,
        on_detection: Optional[Callable[[SmoothedDetection], None]] = None,
    ):
        self.config = config or SmoothingConfig()
        self.detector = detector or EdgeDetector()
        self.smoother = TemporalSmoother(self.config)
        self.on_detection = on_detection
        self._clock = clock
        self._frame_count = 0
        self._last_process_time: Optional[float] = None
        self._processing = False
        self._running = False
        self.latest: Optional[SmoothedDetection] = None

    @classmethod
    def from_config(cls, config_path: Optional[str] = None, **kwargs) -> "LivePreviewController":
        """Build from the detection and smoothing sections of scanner_config.yaml."""
        config = load_config(config_path)
        return cls(
            detector=EdgeDetector(detection_config(config)),
            config=smoothing_config(config),
            **kwargs,
        )

    # ── Session lifecycle ─────────────────────────────────────────────────────

    def start(self) -> None:
        self._reset()
        self._running = True
        logger.info(
            f"[LivePreview] Session started (target {self.config.target_fps:g} FPS, "
            f"skip {self.config.skip_frames})"
        )

    def stop(self) -> None:
        self._running = False
        self._reset()
        logger.info("[LivePreview] Session stopped")

    def __enter__(self) -> "LivePreviewController":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    @property
    def is_running(self) -> bool:
        return self._running

    def _reset(self) -> None:
        self.smoother.reset()
        self._frame_count = 0
        self._last_process_time = None
        self._processing = False
        self.latest = None

    # ── Frame handling ────────────────────────────────────────────────────────

    def submit_frame(self, frame: np.ndarray) -> Optional[SmoothedDetection]:
        if not self._running or self._processing:
            return None

        self._frame_count += 1
        if self._frame_count % (self.config.skip_frames + 1) != 0:
            return None

        now = self._clock()
        min_interval = 1.0 / self.config.target_fps
        if self._last_process_time is not None and now - self._last_process_time < min_interval:
            return None
        self._last_process_time = now

        self._processing = True
        try:
            result = self._process(frame)
        finally:
            self._processing = False

        self.latest = result
        if self.on_detection is not None:
            self.on_detection(result)
        return result

    def run(self, frames: Iterable[np.ndarray]) -> Iterator[SmoothedDetection]:
        """Feed an iterable of frames, yielding each processed result until stop()."""
        for frame in frames:
            if not self._running:
                break
            result = self.submit_frame(frame)
            if result is not None:
                yield result

    def _process(self, frame: np.ndarray) -> SmoothedDetection:
        small, scale = downscale_for_preview(
            frame, self.config.preview_max_width, self.config.preview_max_height
        )
        detection = self.detector.detect_document_fast(small)
        if detection is not None:
            detection = detection.scaled(scale)
        return self.smoother.update(detection)
