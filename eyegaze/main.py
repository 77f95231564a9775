#!/usr/bin/env python3
"""
Replay a recorded gaze stream through the event segmenter.

Usage:
    python -m eyegaze.main --input gaze.csv [--config CONFIG] [--aoi ID,X,Y,W,H ...]

Examples:
    python -m eyegaze.main --input session.csv
    python -m eyegaze.main --input session.csv --aoi menu,0,0,300,1080 --aoi editor,300,0,1620,1080

The CSV needs ``x``, ``y`` and ``timestamp`` (milliseconds) columns; an
optional ``confidence`` column is forwarded. The EyeMetrics snapshot plus
fixation/saccade statistics are printed as YAML.
"""

import argparse
import csv
import sys
from pathlib import Path
from typing import Iterator, List, Optional, Tuple

import yaml

from eyegaze.config import SessionConfig
from eyegaze.errors import GazeEngineError
from eyegaze.metrics.eye_metrics import GazeEventSegmenter, GazePoint
from eyegaze.utils.logger import setup_from_config


def parse_aoi(value: str) -> Tuple[str, float, float, float, float]:
    """Parse 'id,x,y,width,height' into an AOI tuple"""
    parts = [p.strip() for p in value.split(',')]
    if len(parts) != 5:
        raise argparse.ArgumentTypeError(f"AOI must be ID,X,Y,W,H: {value!r}")
    try:
        return parts[0], float(parts[1]), float(parts[2]), float(parts[3]), float(parts[4])
    except ValueError:
        raise argparse.ArgumentTypeError(f"AOI coordinates must be numbers: {value!r}")


def read_gaze_csv(path: Path) -> Iterator[GazePoint]:
    """Yield gaze points from a CSV file with x, y, timestamp columns"""
    with open(path, 'r', newline='') as f:
        reader = csv.DictReader(f)
        missing = {'x', 'y', 'timestamp'} - set(reader.fieldnames or [])
        if missing:
            raise ValueError(f"{path}: missing columns {sorted(missing)}")
        for row in reader:
            yield GazePoint(
                x=float(row['x']),
                y=float(row['y']),
                timestamp=float(row['timestamp']),
                confidence=float(row.get('confidence') or 1.0),
            )


def replay(
    points: Iterator[GazePoint],
    config: SessionConfig,
    areas: List[Tuple[str, float, float, float, float]]
) -> dict:
    """Run a gaze stream through a fresh segmenter and collect the report"""
    segmenter = GazeEventSegmenter(config.segmentation)
    for aoi in areas:
        segmenter.add_area_of_interest(*aoi)

    count = 0
    for point in points:
        segmenter.process(point)
        count += 1

    return {
        'samples': count,
        'metrics': segmenter.get_metrics().to_dict(),
        'fixations': segmenter.fixation_statistics(),
        'saccades': segmenter.saccade_statistics(),
        'visited_areas': segmenter.visited_areas,
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Replay a gaze CSV and report eye metrics",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--input", required=True, type=Path, help="Gaze CSV (x, y, timestamp)")
    parser.add_argument(
        "--config",
        type=str,
        default="config/config.yaml",
        help="Path to configuration file (default: config/config.yaml)"
    )
    parser.add_argument(
        "--aoi",
        type=parse_aoi,
        action="append",
        default=[],
        help="Area of interest as ID,X,Y,W,H (repeatable)"
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    args = parser.parse_args(argv)

    config_found = True
    try:
        config = SessionConfig.load(args.config)
    except FileNotFoundError:
        config_found = False
        config = SessionConfig()

    logger = setup_from_config(config.logging, level_override=args.log_level)
    if not config_found:
        logger.warning(f"Config file not found at {args.config}, using defaults")

    try:
        report = replay(read_gaze_csv(args.input), config, args.aoi)
    except (OSError, ValueError, GazeEngineError) as e:
        logger.error(f"Replay failed: {e}")
        return 1

    logger.info(f"Replayed {report['samples']} samples from {args.input}")
    print(yaml.safe_dump(report, sort_keys=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
