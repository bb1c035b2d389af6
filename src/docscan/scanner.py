"""
Integrated Document Scanning Pipeline
Combines detection, perspective correction, enhancement and optional OCR
"""

import time
from typing import Optional, Sequence, Union

import numpy as np
from loguru import logger

from docscan.collaborators import PageStore, ScannedPage, TextRecognizer
from docscan.config import detection_config, load_config, perspective_config
from docscan.edge_detector import EdgeDetector
from docscan.enhancement import ImageEnhancer
from docscan.exceptions import ProcessingError
from docscan.geometry import PointLike, full_image_quad, to_points
from docscan.models import EnhancementOptions
from docscan.perspective import PerspectiveCorrector
from docscan.presets import FilterPreset, resolve_preset
from docscan.utils import check_image, format_processing_time, load_image, resize_max


class DocumentScanner:
    """
    End-to-end one-shot scan

    Workflow:
    1. Detect the page quad (or take caller-supplied corners)
    2. Fall back to the full frame when nothing is found
    3. Rectify with a perspective warp
    4. Enhance: auto, manual options, or a named preset
    5. Thumbnail, optional OCR, optional storage
    """

    def __init__(
        self,
        config_path: Optional[str] = None,
        recognizer: Optional[TextRecognizer] = None,
        store: Optional[PageStore] = None,
    ):
        logger.info("Initializing Document Scanner")
        self.config = load_config(config_path)

        self.detector = EdgeDetector(detection_config(self.config))
        self.corrector = PerspectiveCorrector(perspective_config(self.config))
        self.enhancer = ImageEnhancer()
        self.recognizer = recognizer
        self.store = store

        scanner_cfg = self.config['scanner']
        enhance_cfg = self.config['enhancement']
        self.fallback_to_full_image = scanner_cfg['fallback_to_full_image']
        self.thumbnail_size = int(scanner_cfg['thumbnail_size'])
        self.ocr_languages = list(scanner_cfg['ocr_languages'])
        self.auto_enhance_default = bool(enhance_cfg['auto_enhance'])
        self.default_preset = enhance_cfg['default_preset']

        logger.success("Document Scanner ready")

    def scan(
        self,
        image: np.ndarray,
        corners: Optional[Sequence[PointLike]] = None,
        preset: Union[str, FilterPreset, None] = None,
        options: Optional[EnhancementOptions] = None,
        auto_enhance: Optional[bool] = None,
        run_ocr: bool = False,
        document_id: Optional[str] = None,
    ) -> ScannedPage:
        """
        Scan one frame.

        Args:
            image:        BGR / BGRA / grayscale frame
            corners:      User-adjusted quad (any order); skips detection
            preset:       Filter preset name, applied after any manual/auto step
            options:      Manual EnhancementOptions
            auto_enhance: Histogram-driven enhancement (defaults to config)
            run_ocr:      Send the processed page to the recognizer
            document_id:  When set and a store is configured, persist the page

        Returns:
            ScannedPage

        Raises:
            InvalidInputError: bad image or corner set
            ProcessingError: OpenCV failure, or no quad with fallback disabled
        """
        check_image(image)
        start = time.time()
        h, w = image.shape[:2]
        notes = []

        # ── Step 1: Corners ───────────────────────────────────────────────────
        confidence = 1.0
        used_fallback = False
        if corners is not None:
            quad = to_points(corners)
            notes.append("manual corners")
        else:
            detected = self.detector.detect_document(image)
            if detected is not None:
                quad = list(detected.contour)
                confidence = detected.confidence
            elif self.fallback_to_full_image:
                logger.info("[Scanner] No document found, using full image")
                quad = full_image_quad(w, h)
                confidence = 0.0
                used_fallback = True
                notes.append("full-image fallback")
            else:
                raise ProcessingError("No document detected")

        # ── Step 2: Rectify ───────────────────────────────────────────────────
        transform = self.corrector.correct_perspective(image, quad)
        processed = transform.corrected_image

        # ── Step 3: Enhance ───────────────────────────────────────────────────
        applied_options = options
        use_auto = self.auto_enhance_default if auto_enhance is None else auto_enhance
        if use_auto:
            if options is not None:
                logger.warning("[Scanner] Auto-enhance is on, ignoring manual enhancement options")
                notes.append("manual options ignored")
            auto = self.enhancer.auto_enhance(processed)
            processed = auto.enhanced_image
            applied_options = auto.applied_settings
            notes.append("auto-enhanced")
        elif options is not None:
            processed = self.enhancer.enhance(processed, options)

        preset_name = preset if preset is not None else self.default_preset
        try:
            resolved = resolve_preset(preset_name)
        except ValueError:
            logger.warning(f"[Scanner] Unknown preset '{preset_name}', using original")
            resolved = FilterPreset.ORIGINAL
        preset_value = resolved.value
        if resolved is not FilterPreset.ORIGINAL:
            processed = self.enhancer.apply_filter(processed, resolved)

        # ── Step 4: Thumbnail / OCR / store ───────────────────────────────────
        thumbnail, _ = resize_max(processed, self.thumbnail_size)
        if thumbnail is processed:
            thumbnail = processed.copy()

        page = ScannedPage(
            original_image=image,
            processed_image=processed,
            thumbnail=thumbnail,
            corners=transform.original_corners,
            dimensions=transform.output_dimensions,
            enhancement=applied_options,
            filter_preset=preset_value,
            detection_confidence=confidence,
            used_fallback_corners=used_fallback,
            notes=notes,
        )

        if run_ocr:
            if self.recognizer is None:
                logger.warning("[Scanner] OCR requested but no recognizer configured")
            else:
                logger.info("Extracting text with OCR...")
                page.ocr = self.recognizer.recognize(processed, self.ocr_languages)

        if document_id is not None and self.store is not None:
            page_id = self.store.save_page(document_id, page)
            logger.info(f"[Scanner] Saved page {page_id} to document {document_id}")

        elapsed_ms = int((time.time() - start) * 1000)
        logger.info(
            f"[Scanner] {w}x{h} → {page.dimensions.width}x{page.dimensions.height} "
            f"preset={preset_value} in {format_processing_time(elapsed_ms)}"
        )
        return page

    def scan_file(self, image_path: str, **kwargs) -> ScannedPage:
        """Load an image from disk and scan it."""
        logger.info(f"Processing single image: {image_path}")
        return self.scan(load_image(image_path), **kwargs)
