"""
Replay source: feed a recorded JSON-lines file through the pipeline.
"""

import logging
from typing import Iterable, Iterator

from compass_fusion.pipeline import CompassPipeline
from compass_fusion.samples import HeadingResult
from compass_fusion.sources.messages import parse_line

logger = logging.getLogger(__name__)


def replay_lines(
    pipeline: CompassPipeline, lines: Iterable[str]
) -> Iterator[HeadingResult]:
    """
    Push each line into the pipeline; yield the heading results produced.

    Location updates are applied before the sample carried on the same line.
    Rejected samples and unparseable lines yield nothing.
    """
    skipped = 0
    for lineno, line in enumerate(lines, 1):
        sample, location = parse_line(line)
        if location is not None:
            pipeline.on_location_update(location)
        if sample is None:
            if location is None and line.strip():
                skipped += 1
                logger.debug("Line %d: no sample or location", lineno)
            continue
        result = pipeline.on_raw_sample(sample)
        if result is not None:
            yield result
    if skipped:
        logger.info("Replay skipped %d unparseable line(s)", skipped)
