#!/usr/bin/env python3
"""
Replay a recorded detection stream through the cognitive tracking core.

Each input line is one frame of detector output:
    {"timestamp": 0.8,
     "detections": [{"box": {"x": 100, "y": 100, "w": 50, "h": 50},
                     "expressions": {"neutral": 0.9, "happy": 0.1}}]}

Detections may carry "expressions", "biometrics" (yaw, pitch, roll, ear,
blink_rate, expressions) and/or a precomputed "metrics" triple.

Usage:
    python main.py --detections frames.jsonl --output snapshots.jsonl

Engineering approach:
- Frames are processed strictly in file order on one tracking worker
- One JSON line of participant snapshots is written per frame
- Session log and suggestions are summarized at the end
"""

import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Dict, Iterator, List, Tuple

from session import FrameDispatcher, MeetingMonitor
from tracking import Detection
from utils.config_loader import DEFAULT_CONFIG_PATH, get_nested_config, load_config

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stderr)]
)

logger = logging.getLogger(__name__)


def read_frames(path: Path) -> Iterator[Tuple[float, List[Detection]]]:
    """
    Parse a JSON-lines detection file.

    Malformed lines are skipped with a warning; a detection that cannot be
    parsed is skipped without dropping the rest of its frame.
    """
    with open(path, 'r') as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue

            try:
                frame = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Line {line_no}: invalid JSON ({e}), skipping frame")
                continue

            if not isinstance(frame, dict):
                logger.warning(f"Line {line_no}: frame is not a JSON object, skipping frame")
                continue

            raw_detections = frame.get('detections') or []
            if not isinstance(raw_detections, list):
                logger.warning(f"Line {line_no}: 'detections' is not a list, skipping frame")
                continue

            detections = []
            for raw in raw_detections:
                try:
                    detections.append(Detection.from_dict(raw))
                except (AttributeError, KeyError, TypeError, ValueError) as e:
                    logger.warning(f"Line {line_no}: unparseable detection ({e}), skipping")

            try:
                timestamp = float(frame.get('timestamp', line_no))
            except (TypeError, ValueError):
                logger.warning(f"Line {line_no}: invalid timestamp, using line number")
                timestamp = float(line_no)

            yield timestamp, detections


def run_replay(detections_path: str, config: Dict, output_path: str = None) -> MeetingMonitor:
    """
    Run every frame of a detection file through a fresh session.

    Args:
        detections_path: JSON-lines file of frames
        config: Configuration dictionary
        output_path: JSON-lines file for per-frame snapshots (stdout if None)

    Returns:
        The monitor, holding the final log and suggestions
    """
    monitor = MeetingMonitor(config)
    policy = get_nested_config(config, 'session.overlap_policy', default='queue')

    out = open(output_path, 'w') if output_path else sys.stdout
    try:
        def write_result(result):
            out.write(json.dumps(result.as_dict()) + "\n")

        dispatcher = FrameDispatcher(monitor, policy=policy, on_result=write_result)
        dispatcher.start()

        # The worker must be finished before the output file is closed
        try:
            for timestamp, detections in read_frames(Path(detections_path)):
                dispatcher.submit(detections, timestamp)
        finally:
            dispatcher.close()

        logger.info(
            f"Processed {dispatcher.processed_frames} frames "
            f"({dispatcher.dropped_frames} dropped)"
        )
    finally:
        if out is not sys.stdout:
            out.close()

    return monitor


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description='Cognitive tracking - replay a detection stream',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Print snapshots to stdout
  python main.py --detections frames.jsonl

  # With custom config and output file
  python main.py --detections frames.jsonl --config custom.yaml --output snapshots.jsonl
        """
    )

    parser.add_argument(
        '--detections',
        type=str,
        required=True,
        help='Path to JSON-lines detection file'
    )

    parser.add_argument(
        '--config',
        type=str,
        default=str(DEFAULT_CONFIG_PATH),
        help='Path to configuration YAML file (default: configs/tracking.yaml)'
    )

    parser.add_argument(
        '--output',
        type=str,
        default=None,
        help='Output JSON-lines file for snapshots (default: stdout)'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    detections_path = Path(args.detections)
    if not detections_path.exists():
        logger.error(f"Detection file not found: {detections_path}")
        sys.exit(1)

    config_path = Path(args.config)
    if not config_path.exists():
        logger.error(f"Config file not found: {config_path}")
        sys.exit(1)

    config = load_config(config_path)

    try:
        monitor = run_replay(str(detections_path), config, args.output)
    except KeyboardInterrupt:
        logger.warning("Replay interrupted by user")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Replay failed: {type(e).__name__}: {e}")
        logger.exception("Full traceback:")
        sys.exit(1)

    logger.info(f"Log records kept: {len(monitor.log)}")
    for snapshot in monitor.participants():
        logger.info(
            f"{snapshot.label}: attention={snapshot.attention:.1f}, "
            f"stress={snapshot.stress:.1f}, {snapshot.body_language}"
        )
    for suggestion in monitor.suggestions.suggestions:
        logger.info(f"Suggestion: {suggestion}")

    sys.exit(0)


if __name__ == '__main__':
    main()
