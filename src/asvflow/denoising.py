"""Denoising of every sample with optional pseudo-pooling.

In pseudo-pooling mode the samples are denoised twice. The variants found in
the first pass are pooled across samples into priors, and the second pass
denoises every sample again with those priors. Only the second pass results
are used downstream.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional

from asvflow.config import DenoiseParameters, FailurePolicy, PoolMethod
from asvflow.dereplication import Dereplication, dereplicate_fastq
from asvflow.engines.protocol import DenoiseResult, DenoisingEngine
from asvflow.filtering import FilterOutcome
from asvflow.learning import ErrorModels
from asvflow.parallel import StageOutcome, run_per_sample
from asvflow.samples import Direction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PseudoPriors:
    """The prior sequences of each read direction."""

    forward: frozenset[str]
    reverse: frozenset[str]

    def for_direction(self, direction: Direction) -> frozenset[str]:
        """Return the priors of a read direction."""
        return self.forward if direction is Direction.FORWARD else self.reverse


@dataclass(frozen=True)
class SampleDenoising:
    """The denoised forward and reverse reads of one sample."""

    sample_id: str
    forward: DenoiseResult
    reverse: DenoiseResult
    derep_forward: Dereplication
    derep_reverse: Dereplication

    @property
    def denoised_read_count(self) -> int:
        """Return the number of denoised reads, counted on the forward reads."""
        return self.forward.denoised_read_count


def denoise_sample(
    outcome: FilterOutcome,
    engine: DenoisingEngine,
    models: ErrorModels,
    priors: Optional[PseudoPriors] = None,
) -> SampleDenoising:
    """Dereplicate and denoise both read files of a sample.

    :param outcome: the filter outcome of the sample
    :param engine: the denoising engine
    :param models: the shared error models
    :param priors: the pseudo-pooling priors, if any
    :returns: the denoised reads of the sample
    """
    if not outcome.passed:
        raise ValueError(f"Sample {outcome.sample.sample_id} has no filtered reads")

    results = {}
    dereps = {}
    for direction, path in (
        (Direction.FORWARD, outcome.filtered_forward),
        (Direction.REVERSE, outcome.filtered_reverse),
    ):
        dereps[direction] = dereplicate_fastq(path)
        results[direction] = engine.denoise(
            dereps[direction],
            models.for_direction(direction),
            priors.for_direction(direction) if priors is not None else None,
        )

    return SampleDenoising(
        sample_id=outcome.sample.sample_id,
        forward=results[Direction.FORWARD],
        reverse=results[Direction.REVERSE],
        derep_forward=dereps[Direction.FORWARD],
        derep_reverse=dereps[Direction.REVERSE],
    )


def denoise_samples(
    outcomes: Mapping[str, FilterOutcome],
    engine: DenoisingEngine,
    models: ErrorModels,
    priors: Optional[PseudoPriors] = None,
    threads: int = 1,
    failure_policy: FailurePolicy = FailurePolicy.ABORT,
) -> StageOutcome[SampleDenoising]:
    """Denoise every sample with the shared error models.

    :param outcomes: the filter outcome of every sample to denoise
    :param engine: the denoising engine
    :param models: the shared error models
    :param priors: the pseudo-pooling priors, if any
    :param threads: the number of worker threads
    :param failure_policy: what to do when a sample fails
    :returns: the denoised reads of every sample that did not fail
    """

    def _denoise(sample_id: str, outcome: FilterOutcome) -> SampleDenoising:
        logger.debug("Denoising sample %s", sample_id)
        return denoise_sample(outcome, engine, models, priors)

    return run_per_sample(
        "denoising",
        outcomes,
        _denoise,
        threads=threads,
        failure_policy=failure_policy,
    )


def select_pseudo_priors(
    results: Iterable[DenoiseResult],
    min_samples: int = 2,
    min_abundance: float = float("inf"),
) -> frozenset[str]:
    """Select the variants that become priors for the second pass.

    A variant is a prior when it was found in at least `min_samples` samples
    or when its total abundance is at least `min_abundance`.

    :param results: the first pass results of one direction, one per sample
    :param min_samples: the minimum number of samples with the variant
    :param min_abundance: the minimum total abundance of the variant
    :returns: the prior sequences
    """
    n_samples: Counter[str] = Counter()
    totals: Counter[str] = Counter()
    for result in results:
        for variant, abundance in result.as_abundance_map().items():
            if abundance > 0:
                n_samples[variant] += 1
                totals[variant] += abundance

    return frozenset(
        variant
        for variant in n_samples
        if n_samples[variant] >= min_samples or totals[variant] >= min_abundance
    )


def compute_pseudo_priors(
    first_pass: Mapping[str, SampleDenoising], params: DenoiseParameters
) -> PseudoPriors:
    """Compute the priors of both directions from all first pass results."""
    priors = PseudoPriors(
        forward=select_pseudo_priors(
            (r.forward for r in first_pass.values()),
            params.prior_min_samples,
            params.prior_min_abundance,
        ),
        reverse=select_pseudo_priors(
            (r.reverse for r in first_pass.values()),
            params.prior_min_samples,
            params.prior_min_abundance,
        ),
    )
    logger.info(
        "Pseudo-pooling priors: %i forward and %i reverse sequences",
        len(priors.forward),
        len(priors.reverse),
    )
    return priors


def run_denoising(
    outcomes: Mapping[str, FilterOutcome],
    engine: DenoisingEngine,
    models: ErrorModels,
    params: DenoiseParameters,
    threads: int = 1,
    failure_policy: FailurePolicy = FailurePolicy.ABORT,
) -> StageOutcome[SampleDenoising]:
    """Denoise every sample according to the pooling method.

    In pseudo-pooling mode every sample completes the first pass before the
    priors are computed, and the priors exist before any second pass starts.

    :param outcomes: the filter outcome of every sample to denoise
    :param engine: the denoising engine
    :param models: the shared error models
    :param params: the denoising settings
    :param threads: the number of worker threads
    :param failure_policy: what to do when a sample fails
    :returns: the final denoised reads of every sample that did not fail
    """
    if params.pool_method is PoolMethod.INDEPENDENT:
        return denoise_samples(
            outcomes, engine, models, threads=threads, failure_policy=failure_policy
        )

    logger.info("Pseudo-pooling pass 1 of 2")
    first_pass = denoise_samples(
        outcomes, engine, models, threads=threads, failure_policy=failure_policy
    )
    priors = compute_pseudo_priors(first_pass.results, params)

    logger.info("Pseudo-pooling pass 2 of 2")
    second_pass = denoise_samples(
        {s: outcomes[s] for s in first_pass.results},
        engine,
        models,
        priors=priors,
        threads=threads,
        failure_policy=failure_policy,
    )
    second_pass.failures = {**first_pass.failures, **second_pass.failures}
    return second_pass
