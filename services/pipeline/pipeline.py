"""
Pipeline service for analyzing test strip images.

Orchestrates: Strip Location → Band Segmentation → Color Sampling → Color Matching
"""

import asyncio
import logging
import math
from dataclasses import replace
from typing import Dict, List, Optional, Tuple

from config.analysis_config import get_analysis_config
from config.calibration_config import DEFAULT_STRIP_TYPE, STRIP_TYPES
from config.remote_detection_config import get_remote_detection_config
from services.calibration import CalibrationTable, get_calibration_table
from services.detection.remote_detector import RemoteStripDetector
from services.errors import AnalysisTimeout, InvalidParameterKey, NoStripDetected, RemoteDetectionUnavailable
from services.interfaces import (
    METHOD_FALLBACK,
    METHOD_REMOTE,
    AnalysisResult,
    BandSample,
    ParameterReading,
    PixelBuffer,
    StripCandidate,
)
from services.pipeline.context import AnalysisContext, AnalysisStage
from services.pipeline.steps.band_segmentation import BandSegmenter
from services.pipeline.steps.color_extraction import RegionSampler
from services.pipeline.steps.strip_location import StripLocator
from services.utils.color_matching import ColorMatcher, ColorSpaceStrategy
from utils.coordinate_transform import downscale_for_analysis
from utils.image_loader import ImageSource, load_pixel_buffer_async

logger = logging.getLogger(__name__)


def parameter_keys_for(strip_type: str) -> Tuple[str, ...]:
    """
    Parameter keys read from a strip type, in band order.

    Raises:
        ValueError: If the strip type is unknown
    """
    try:
        return STRIP_TYPES[strip_type]
    except KeyError:
        raise ValueError(
            f'Unknown strip type: {strip_type!r} (expected one of {", ".join(STRIP_TYPES)})'
        ) from None


def combine_confidence(sample_confidence: float, match_confidence: float, multiplier: float = 1.0) -> float:
    """
    Reading confidence: the weaker of the two inputs, scaled by the method
    multiplier and rounded down to 2 decimals so it never exceeds either.
    """
    combined = min(sample_confidence, match_confidence) * multiplier
    return math.floor(round(combined * 100, 6)) / 100


def create_remote_detector(config: Optional[Dict] = None) -> Optional[RemoteStripDetector]:
    """Remote detector if REMOTE_DETECTION_URL is configured, else None."""
    config = config or get_remote_detection_config()
    if not config.get('url'):
        return None
    return RemoteStripDetector(config)


class AnalysisPipeline:
    """
    Main pipeline that turns a strip photo into parameter readings.

    Pipeline: Image → Strip Location (remote, then local) → Band Segmentation
    → Color Sampling → Color Matching. When no strip is found, bands are
    sampled at fixed positions and confidence is reduced.

    The pipeline holds only read-only collaborators, so one instance can
    serve concurrent analyses.
    """

    def __init__(
        self,
        calibration: Optional[CalibrationTable] = None,
        strategy: Optional[ColorSpaceStrategy] = None,
        strip_locator: Optional[StripLocator] = None,
        remote_detector: Optional[RemoteStripDetector] = None,
        sampler: Optional[RegionSampler] = None,
        segmenter: Optional[BandSegmenter] = None,
        matcher: Optional[ColorMatcher] = None,
        config: Optional[Dict] = None,
        use_remote: bool = True
    ):
        """
        Initialize analysis pipeline.

        Args:
            calibration: Calibration table (defaults to get_calibration_table())
            strategy: Color comparison space (defaults to COLOR_SPACE)
            strip_locator: Optional pre-initialized locator
            remote_detector: Optional remote detector (defaults to one built from
                remote_detection_config when a URL is configured)
            sampler: Optional pre-initialized region sampler
            segmenter: Optional pre-initialized band segmenter
            matcher: Optional pre-initialized color matcher (overrides strategy)
            config: Analysis config (defaults to get_analysis_config())
            use_remote: Set False to never call the remote detector
        """
        self.config = config or get_analysis_config()
        self.calibration = calibration or get_calibration_table()
        self.sampler = sampler or RegionSampler(self.config['sampler'])
        self.segmenter = segmenter or BandSegmenter()
        self.strip_locator = strip_locator or StripLocator(
            segmenter=self.segmenter,
            sampler=self.sampler,
            config=self.config['locator']
        )

        if matcher is None:
            strategy = ColorSpaceStrategy(strategy or self.config['color_space'])
            matcher = ColorMatcher(self.calibration, strategy, self.config['matcher'][strategy.value])
        self.matcher = matcher

        if not use_remote:
            self.remote_detector = None
        else:
            self.remote_detector = remote_detector or create_remote_detector()

        self.logger = logging.getLogger(__name__)

    @property
    def strategy(self) -> ColorSpaceStrategy:
        return self.matcher.strategy

    def analyze(
        self,
        buffer: PixelBuffer,
        strip_type: str = DEFAULT_STRIP_TYPE,
        timeout: Optional[float] = None
    ) -> AnalysisResult:
        """
        Analyze a decoded strip image.

        Args:
            buffer: Decoded image
            strip_type: '3-in-1' or '6-in-1'
            timeout: Wall-clock budget in seconds (defaults to ANALYSIS_TIMEOUT_SECONDS)

        Returns:
            AnalysisResult with one reading per parameter of the strip type

        Raises:
            ValueError: If the strip type is unknown
            AnalysisTimeout: If the budget is exceeded at a stage boundary
        """
        keys = parameter_keys_for(strip_type)
        timeout = self.config['timeout_seconds'] if timeout is None else timeout

        working, scale_x, scale_y = downscale_for_analysis(buffer, int(self.config['max_dimension']))
        ctx = AnalysisContext(
            original=buffer,
            working=working,
            parameter_keys=list(keys),
            timeout=timeout,
            scale_x=scale_x,
            scale_y=scale_y
        )
        self.logger.info(
            f'Analyzing {buffer.width}x{buffer.height} image as {strip_type} '
            f'(working {working.width}x{working.height}, {self.strategy.value})'
        )

        # Step 1: Locate strip
        ctx.advance(AnalysisStage.LOCATING)
        strip = self._locate(ctx)

        # Step 2: Band regions (segmented strip, or fixed positions)
        if strip is not None:
            ctx.advance(AnalysisStage.SEGMENTING)
            ctx.regions = self._segment(ctx, strip)
        else:
            ctx.advance(AnalysisStage.FALLBACK_SAMPLING)
            ctx.regions = self.segmenter.fallback_regions(working.width, working.height, len(keys))

        # Step 3: Sample dominant colors
        ctx.advance(AnalysisStage.SAMPLING)
        ctx.samples = self._sample(ctx)

        # Step 4: Match colors to values
        ctx.advance(AnalysisStage.MATCHING)
        ctx.readings = self._match(ctx)

        ctx.advance(AnalysisStage.DONE)

        result = AnalysisResult(
            readings=ctx.readings,
            strip_type=strip_type,
            method=ctx.method,
            color_space=self.strategy.value,
            strip=self._strip_to_original(ctx),
            bands=ctx.samples,
            stages=list(ctx.stages),
            processing_time_ms=ctx.elapsed_ms
        )
        self.logger.info(
            f'Analysis complete: {len(result.readings)} readings via {result.method} '
            f'in {result.processing_time_ms}ms'
        )
        return result

    async def analyze_source(
        self,
        source: ImageSource,
        strip_type: str = DEFAULT_STRIP_TYPE,
        timeout: Optional[float] = None,
        load_timeout: Optional[float] = None
    ) -> AnalysisResult:
        """
        Load an image and analyze it.

        Loading is awaited first (bounded by ``load_timeout``); the synchronous
        pipeline then runs in a worker thread bounded by ``timeout``.

        ``wait_for`` cannot interrupt the worker thread, so a caller that owns
        the event loop (e.g. ``asyncio.run``) still waits for the thread on
        shutdown. The effective guard is ``AnalysisContext.check_deadline``,
        which the worker hits at every stage boundary and between band
        samples, so an overrun surfaces there rather than at the budget.

        Raises:
            ImageLoadError: If the image cannot be loaded
            AnalysisTimeout: If the analysis budget is exceeded
            ValueError: If the strip type is unknown
        """
        parameter_keys_for(strip_type)
        timeout = self.config['timeout_seconds'] if timeout is None else timeout

        buffer = await load_pixel_buffer_async(source, load_timeout)

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.analyze, buffer, strip_type, timeout),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            self.logger.warning(f'Analysis exceeded {timeout}s budget')
            raise AnalysisTimeout(stage='analysis') from None

    def _locate(self, ctx: AnalysisContext) -> Optional[StripCandidate]:
        """Remote detection first (when configured), then the local locator."""
        band_count = len(ctx.parameter_keys)

        if self.remote_detector is not None:
            try:
                candidate = self.remote_detector.detect(ctx.working, band_count)
            except RemoteDetectionUnavailable as e:
                self.logger.warning(f'Remote detection unavailable, using local detection: {e}')
                candidate = None
            if candidate is not None:
                ctx.strip = replace(candidate, method=METHOD_REMOTE)
                ctx.method = METHOD_REMOTE
                return ctx.strip
            ctx.check_deadline()

        try:
            candidate = self.strip_locator.locate(ctx.working, band_count)
        except NoStripDetected as e:
            self.logger.info(f'No strip detected: {e}')
            candidate = None

        if candidate is None:
            self.logger.info('Falling back to fixed band positions')
            ctx.method = METHOD_FALLBACK
            ctx.confidence_multiplier = float(self.config['fallback_confidence_multiplier'])
            return None

        ctx.strip = candidate
        ctx.method = candidate.method
        return candidate

    def _segment(self, ctx: AnalysisContext, strip: StripCandidate) -> List:
        count = len(ctx.parameter_keys)
        if len(strip.band_regions) == count:
            return list(strip.band_regions)
        regions = self.segmenter.segment(strip.bounds, strip.is_vertical, count)
        ctx.strip = replace(strip, band_regions=tuple(regions))
        return regions

    def _sample(self, ctx: AnalysisContext) -> List[BandSample]:
        samples = []
        for key, region in zip(ctx.parameter_keys, ctx.regions):
            ctx.check_deadline()
            result = self.sampler.sample(ctx.working, region)
            samples.append(BandSample(
                parameter_key=key,
                region=ctx.to_original(region),
                dominant_color=result.color,
                sample_confidence=result.confidence
            ))
            self.logger.debug(
                f'{key}: sampled {result.color.as_tuple()} '
                f'from {result.pixel_count} pixels (confidence {result.confidence})'
            )
        return samples

    def _match(self, ctx: AnalysisContext) -> Dict[str, ParameterReading]:
        readings: Dict[str, ParameterReading] = {}
        for sample in ctx.samples:
            ctx.check_deadline()
            key = sample.parameter_key
            try:
                match = self.matcher.match(sample.dominant_color, key)
                unit = self.calibration.unit(key)
            except InvalidParameterKey as e:
                self.logger.warning(f'Skipping parameter without calibration: {e}')
                continue

            readings[key] = ParameterReading(
                parameter_key=key,
                value=match.value,
                status=match.status,
                unit=unit,
                confidence=combine_confidence(sample.sample_confidence, match.confidence, ctx.confidence_multiplier),
                detected_color=sample.dominant_color,
                method=ctx.method
            )
        return readings

    def _strip_to_original(self, ctx: AnalysisContext) -> Optional[StripCandidate]:
        if ctx.strip is None:
            return None
        return replace(
            ctx.strip,
            bounds=ctx.to_original(ctx.strip.bounds),
            band_regions=tuple(ctx.to_original(region) for region in ctx.strip.band_regions)
        )
