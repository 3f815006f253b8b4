"""Merging of the denoised read pairs of every sample.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from typing import Mapping

from asvflow.config import FailurePolicy
from asvflow.denoising import SampleDenoising
from asvflow.engines.protocol import MergedResult, MergingEngine
from asvflow.parallel import StageOutcome, run_per_sample

logger = logging.getLogger(__name__)


def merge_sample(
    denoised: SampleDenoising, engine: MergingEngine, min_overlap: int
) -> MergedResult:
    """Merge the denoised forward and reverse reads of one sample."""
    result = engine.merge(
        denoised.forward,
        denoised.derep_forward,
        denoised.reverse,
        denoised.derep_reverse,
        min_overlap,
    )
    logger.debug(
        "Sample %s: %i read pairs merged, %i rejected",
        denoised.sample_id,
        result.merged_read_count,
        result.rejected_pairs,
    )
    return result


def merge_samples(
    denoised: Mapping[str, SampleDenoising],
    engine: MergingEngine,
    min_overlap: int,
    threads: int = 1,
    failure_policy: FailurePolicy = FailurePolicy.ABORT,
) -> StageOutcome[MergedResult]:
    """Merge the read pairs of every denoised sample.

    :param denoised: the denoised reads of every sample
    :param engine: the merging engine
    :param min_overlap: the minimum overlap of a read pair
    :param threads: the number of worker threads
    :param failure_policy: what to do when a sample fails
    :returns: the merged sequences of every sample that did not fail
    """
    return run_per_sample(
        "merging",
        denoised,
        lambda _, d: merge_sample(d, engine, min_overlap),
        threads=threads,
        failure_policy=failure_policy,
    )
