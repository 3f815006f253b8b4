"""Filtering of the raw read pairs of every sample.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from asvflow.config import FailurePolicy, FilterParameters
from asvflow.engines.protocol import FilteringEngine
from asvflow.exception import NoReadsPassedFilterError
from asvflow.parallel import StageOutcome, run_per_sample
from asvflow.samples import Direction, Sample
from asvflow.types import PathType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterOutcome:
    """The filtered read pair of one sample with its read counts."""

    sample: Sample
    input_count: int
    output_count: int
    filtered_forward: Optional[Path] = None
    filtered_reverse: Optional[Path] = None

    @property
    def passed(self) -> bool:
        """Return True if any read pair survived filtering."""
        return (
            self.output_count > 0
            and self.filtered_forward is not None
            and self.filtered_reverse is not None
        )


def filter_samples(
    samples: Sequence[Sample],
    engine: FilteringEngine,
    params: FilterParameters,
    filtered_dir_f: PathType,
    filtered_dir_r: PathType,
    threads: int = 1,
    failure_policy: FailurePolicy = FailurePolicy.ABORT,
) -> StageOutcome[FilterOutcome]:
    """Filter the read pairs of every sample.

    The filtered files keep the names of the raw files.

    :param samples: the samples to filter
    :param engine: the filtering engine
    :param params: the filter settings
    :param filtered_dir_f: the directory of the filtered forward reads
    :param filtered_dir_r: the directory of the filtered reverse reads
    :param threads: the number of worker threads
    :param failure_policy: what to do when a sample fails
    :returns: the filter outcome of every sample that did not fail
    :raises NoReadsPassedFilterError: if no read pair of any sample survived
    :raises SampleProcessingError: if a sample fails and the policy is abort,
        or if every sample fails
    """
    filtered_dirs = {
        Direction.FORWARD: Path(filtered_dir_f),
        Direction.REVERSE: Path(filtered_dir_r),
    }
    for directory in filtered_dirs.values():
        directory.mkdir(parents=True, exist_ok=True)

    def _filter(sample_id: str, sample: Sample) -> FilterOutcome:
        logger.debug("Filtering sample %s", sample_id)
        raw = {d: sample.path(d) for d in Direction}
        filtered = {d: filtered_dirs[d] / raw[d].name for d in Direction}
        result = engine.filter(
            raw[Direction.FORWARD],
            raw[Direction.REVERSE],
            filtered[Direction.FORWARD],
            filtered[Direction.REVERSE],
            params,
        )
        return FilterOutcome(
            sample=sample,
            input_count=result.input_count,
            output_count=result.output_count,
            filtered_forward=result.filtered_forward,
            filtered_reverse=result.filtered_reverse,
        )

    outcome = run_per_sample(
        "filtering",
        {s.sample_id: s for s in samples},
        _filter,
        threads=threads,
        failure_policy=failure_policy,
    )

    if not outcome.results and outcome.failures:
        # every sample failed, report the first one instead of an empty filter
        raise next(
            outcome.failures[s.sample_id]
            for s in samples
            if s.sample_id in outcome.failures
        )

    passed = [o for o in outcome.results.values() if o.passed]
    for o in outcome.results.values():
        if not o.passed:
            logger.warning(
                "No reads of sample %s passed the filter, it is excluded "
                "from the next stages",
                o.sample.sample_id,
            )

    if not passed:
        raise NoReadsPassedFilterError(
            "No reads passed the filter (were truncLenF/R longer than the read "
            "lengths?)",
            n_samples=len(samples),
        )

    logger.info(
        "%i of %i samples have reads passing the filter", len(passed), len(samples)
    )
    return outcome
