"""
Gaze Event Segmentation

Classifies a time-ordered stream of gaze points into fixations, saccades,
dwell time and refixations, and reports aggregate eye metrics:

1. Gaze duration        - total time covered by the sample stream
2. Dwell time           - time spent continuously inside one area of interest
3. Saccade length       - mean distance of rapid eye movements
4. Distractor saccades  - saccades landing outside every area of interest
5. Fixation count       - number of committed fixations
6. Refixation ratio     - repeat area visits per fixation

Units follow the input: pixels for positions, milliseconds for timestamps.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, replace
from typing import Dict, List, Optional, Tuple
import math
import logging

import numpy as np

from eyegaze.config import SegmentationConfig
from eyegaze.errors import OutOfOrderSampleError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GazePoint:
    """A single predicted gaze sample"""
    x: float
    y: float
    timestamp: float
    confidence: float = 1.0

    def distance_to(self, other: "GazePoint") -> float:
        return math.hypot(other.x - self.x, other.y - self.y)


@dataclass
class Fixation:
    """A fixation window anchored at its first sample"""
    anchor: GazePoint
    duration: float = 0.0


@dataclass(frozen=True)
class Saccade:
    """A rapid movement between two consecutive samples"""
    start: GazePoint
    end: GazePoint
    length: float
    duration: float


@dataclass(frozen=True)
class AreaOfInterest:
    """Rectangular screen region, bounds inclusive"""
    id: str
    x: float
    y: float
    width: float
    height: float

    def contains(self, px: float, py: float) -> bool:
        return (self.x <= px <= self.x + self.width and
                self.y <= py <= self.y + self.height)


@dataclass(frozen=True)
class EyeMetrics:
    """Snapshot of aggregate eye metrics"""
    gaze_duration: float
    dwell_time: float
    saccade_length: float
    distractor_saccades: int
    fixation_count: int
    refixation_ratio: float
    # Auxiliary totals
    total_saccades: int
    avg_fixation_duration: float
    total_time: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


class GazeEventSegmenter:
    """
    Per-session accumulator for gaze events

    Usage:
        segmenter = GazeEventSegmenter()
        segmenter.add_area_of_interest("button", 0, 0, 100, 100)
        for x, y, t in stream:
            segmenter.process_gaze_point(x, y, t)
        metrics = segmenter.get_metrics()
    """

    def __init__(self, config: Optional[SegmentationConfig] = None):
        self.config = config or SegmentationConfig()
        self._areas: List[AreaOfInterest] = []
        self.reset()

    # ------------------------------------------------------------------
    # Areas of interest
    # ------------------------------------------------------------------

    def add_area_of_interest(self, aoi_id: str, x: float, y: float, width: float, height: float) -> AreaOfInterest:
        """Register a rectangular area of interest"""
        if width < 0 or height < 0:
            raise ValueError(f"Area of interest '{aoi_id}' has negative size")
        area = AreaOfInterest(str(aoi_id), float(x), float(y), float(width), float(height))
        self._areas.append(area)
        return area

    def clear_areas_of_interest(self):
        self._areas.clear()

    @property
    def areas_of_interest(self) -> Tuple[AreaOfInterest, ...]:
        return tuple(self._areas)

    def find_area(self, x: float, y: float) -> Optional[AreaOfInterest]:
        """First registered area containing the point, if any"""
        for area in self._areas:
            if area.contains(x, y):
                return area
        return None

    # ------------------------------------------------------------------
    # Sample processing
    # ------------------------------------------------------------------

    def process_gaze_point(self, x: float, y: float, timestamp: float, confidence: float = 1.0):
        """Process one gaze sample given as coordinates"""
        self.process(GazePoint(float(x), float(y), float(timestamp), float(confidence)))

    def process(self, point: GazePoint):
        """
        Process one gaze sample and update every metric.

        Raises:
            OutOfOrderSampleError: timestamp earlier than the previous sample
        """
        last = self._last_point
        if last is not None and point.timestamp < last.timestamp:
            raise OutOfOrderSampleError(last.timestamp, point.timestamp)

        if self._first_timestamp is None:
            self._first_timestamp = point.timestamp

        area = self.find_area(point.x, point.y)

        self._update_gaze_duration(point)
        self._detect_fixation(point)
        self._detect_saccade(point, area)
        self._update_dwell_time(point, area)
        self._update_refixations(area)

        self._last_point = point

    def _update_gaze_duration(self, point: GazePoint):
        if self._last_point is not None:
            self._gaze_duration += point.timestamp - self._last_point.timestamp

    def _detect_fixation(self, point: GazePoint):
        current = self._current_fixation
        if current is None:
            self._current_fixation = Fixation(anchor=point)
            return

        if current.anchor.distance_to(point) <= self.config.fixation_radius:
            current.duration = point.timestamp - current.anchor.timestamp
            return

        if current.duration >= self.config.min_fixation_duration:
            self._fixations.append(replace(current))
            logger.debug(f"Fixation at ({current.anchor.x:.0f}, {current.anchor.y:.0f}) "
                         f"for {current.duration:.0f} ms")

        self._current_fixation = Fixation(anchor=point)

    def _detect_saccade(self, point: GazePoint, area: Optional[AreaOfInterest]):
        last = self._last_point
        if last is None:
            return

        distance = last.distance_to(point)
        elapsed = point.timestamp - last.timestamp

        if distance > self.config.saccade_distance_threshold and elapsed < self.config.saccade_time_threshold:
            self._saccades.append(Saccade(start=last, end=point, length=distance, duration=elapsed))
            self._total_saccade_length += distance
            if area is None:
                self._distractor_saccades += 1

    def _update_dwell_time(self, point: GazePoint, area: Optional[AreaOfInterest]):
        if (area is not None and self._current_area is not None
                and self._current_area.id == area.id and self._last_point is not None):
            self._dwell_time += point.timestamp - self._last_point.timestamp
        self._current_area = area

    def _update_refixations(self, area: Optional[AreaOfInterest]):
        if area is None:
            return
        visits = self._visited_areas.get(area.id, 0)
        self._visited_areas[area.id] = visits + 1
        if visits > 0:
            self._refixation_count += 1

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    @property
    def fixations(self) -> Tuple[Fixation, ...]:
        return tuple(self._fixations)

    @property
    def current_fixation(self) -> Optional[Fixation]:
        return replace(self._current_fixation) if self._current_fixation else None

    @property
    def saccades(self) -> Tuple[Saccade, ...]:
        return tuple(self._saccades)

    @property
    def visited_areas(self) -> Dict[str, int]:
        return dict(self._visited_areas)

    @property
    def refixation_count(self) -> int:
        return self._refixation_count

    @property
    def last_point(self) -> Optional[GazePoint]:
        return self._last_point

    def get_metrics(self) -> EyeMetrics:
        """Snapshot of the current metrics; does not modify any state"""
        fixation_count = len(self._fixations)

        total_time = 0.0
        if self._first_timestamp is not None and self._last_point is not None:
            total_time = self._last_point.timestamp - self._first_timestamp

        saccade_length = self._total_saccade_length / len(self._saccades) if self._saccades else 0.0
        refixation_ratio = self._refixation_count / fixation_count if fixation_count else 0.0
        avg_fixation_duration = (
            sum(f.duration for f in self._fixations) / fixation_count if fixation_count else 0.0
        )

        return EyeMetrics(
            gaze_duration=self._gaze_duration,
            dwell_time=self._dwell_time,
            saccade_length=saccade_length,
            distractor_saccades=self._distractor_saccades,
            fixation_count=fixation_count,
            refixation_ratio=refixation_ratio,
            total_saccades=len(self._saccades),
            avg_fixation_duration=avg_fixation_duration,
            total_time=total_time,
        )

    def fixation_statistics(self) -> dict:
        """Distribution of committed fixations (durations and positions)"""
        if not self._fixations:
            return {
                'count': 0,
                'total_duration': 0.0,
                'mean_duration': 0.0,
                'std_duration': 0.0,
                'dispersion': 0.0
            }

        durations = np.array([f.duration for f in self._fixations])
        xs = np.array([f.anchor.x for f in self._fixations])
        ys = np.array([f.anchor.y for f in self._fixations])

        return {
            'count': len(self._fixations),
            'total_duration': float(durations.sum()),
            'mean_duration': float(durations.mean()),
            'std_duration': float(durations.std()),
            'dispersion': float(np.sqrt(xs.std() ** 2 + ys.std() ** 2)) if len(xs) > 1 else 0.0
        }

    def saccade_statistics(self) -> dict:
        """Distribution of detected saccades (amplitude, duration, velocity)"""
        if not self._saccades:
            return {
                'count': 0,
                'mean_amplitude': 0.0,
                'std_amplitude': 0.0,
                'mean_duration': 0.0,
                'mean_velocity': 0.0
            }

        amplitudes = np.array([s.length for s in self._saccades])
        durations = np.array([s.duration for s in self._saccades])
        # px/ms; zero-duration saccades contribute no velocity
        velocities = np.array([s.length / s.duration for s in self._saccades if s.duration > 0])

        return {
            'count': len(self._saccades),
            'mean_amplitude': float(amplitudes.mean()),
            'std_amplitude': float(amplitudes.std()),
            'mean_duration': float(durations.mean()),
            'mean_velocity': float(velocities.mean()) if velocities.size else 0.0
        }

    def reset(self):
        """Clear accumulated statistics; areas of interest are kept"""
        self._current_fixation: Optional[Fixation] = None
        self._fixations: List[Fixation] = []
        self._saccades: List[Saccade] = []
        self._last_point: Optional[GazePoint] = None
        self._first_timestamp: Optional[float] = None
        self._current_area: Optional[AreaOfInterest] = None
        self._visited_areas: Dict[str, int] = {}

        self._gaze_duration = 0.0
        self._dwell_time = 0.0
        self._total_saccade_length = 0.0
        self._distractor_saccades = 0
        self._refixation_count = 0
