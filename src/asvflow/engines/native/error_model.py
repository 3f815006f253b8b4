"""Self-consistent learning of sequencing error rates.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Sequence

import numpy as np
import numpy.typing as npt

from asvflow.dereplication import Dereplication, dereplicate_fastq
from asvflow.engines.native.dada import NativeDenoisingEngine, encode_sequence
from asvflow.engines.protocol import (
    DEFAULT_MAX_QUALITY,
    N_TRANSITIONS,
    DenoiseResult,
    ErrorModel,
)

logger = logging.getLogger(__name__)

MIN_ERROR_RATE = 1e-7
MAX_ROUNDS = 3


def transition_counts(
    derep: Dereplication,
    result: DenoiseResult,
    max_quality: int = DEFAULT_MAX_QUALITY,
) -> npt.NDArray[np.float64]:
    """Count the base transitions between every unique and its variant.

    :param derep: the dereplicated reads
    :param result: the denoising result of `derep`
    :param max_quality: the highest quality score to count
    :returns: a 16 x (max_quality + 1) matrix of read weighted counts
    """
    counts = np.zeros((N_TRANSITIONS, max_quality + 1), dtype=np.float64)
    for i, variant_idx in enumerate(result.assignments):
        if variant_idx < 0:
            continue
        unique = encode_sequence(derep.sequences[i])
        variant = encode_sequence(result.variants[variant_idx])
        if unique.shape != variant.shape:
            continue
        valid = (unique >= 0) & (variant >= 0)
        quality = np.clip(np.rint(derep.qualities[i]), 0, max_quality).astype(np.int64)
        np.add.at(
            counts,
            (variant[valid] * 4 + unique[valid], quality[valid]),
            float(derep.counts[i]),
        )
    return counts


def estimate_error_model(counts: npt.NDArray[np.float64]) -> ErrorModel:
    """Estimate an error model from transition counts.

    Off-diagonal rates are floored at a small minimum and scaled down when
    together they leave less than that minimum for the correct call. Quality
    scores without observations fall back to the nominal Phred rates.
    """
    phred = ErrorModel.from_phred(counts.shape[1] - 1).rates
    rates = np.array(phred, copy=True)
    for from_base in range(4):
        rows = slice(from_base * 4, from_base * 4 + 4)
        block = counts[rows]
        totals = block.sum(axis=0)
        observed = totals > 0
        if not observed.any():
            continue

        estimate = np.zeros_like(block)
        estimate[:, observed] = block[:, observed] / totals[observed]
        for to_base in range(4):
            if to_base != from_base:
                estimate[to_base] = np.maximum(estimate[to_base], MIN_ERROR_RATE)
        off_diagonal = [to for to in range(4) if to != from_base]
        error_total = estimate[off_diagonal].sum(axis=0)
        scale = np.minimum(1.0, (1.0 - MIN_ERROR_RATE) / error_total)
        estimate[off_diagonal] *= scale
        estimate[from_base] = 1.0 - estimate[off_diagonal].sum(axis=0)

        rates[rows] = np.where(observed, estimate, rates[rows])
    return ErrorModel(rates)


class NativeErrorModelEngine:
    """Learn error rates by alternating denoising and rate estimation."""

    def __init__(
        self,
        max_rounds: int = MAX_ROUNDS,
        denoiser: Optional[NativeDenoisingEngine] = None,
    ):
        """Initialize the engine.

        :param max_rounds: the maximum number of denoise/estimate rounds
        :param denoiser: the denoiser to use while learning
        """
        self.max_rounds = max_rounds
        self.denoiser = denoiser or NativeDenoisingEngine()

    def learn(
        self, filtered_files: Sequence[Path], target_read_count: int
    ) -> ErrorModel:
        """Learn an error model from the reads of one direction.

        Samples are added in order until `target_read_count` reads are
        collected. A target of 0 uses all reads.
        """
        dereps: list[Dereplication] = []
        n_reads = 0
        for path in filtered_files:
            derep = dereplicate_fastq(path)
            dereps.append(derep)
            n_reads += derep.read_count
            if target_read_count > 0 and n_reads >= target_read_count:
                break

        n_bases = sum(
            int(np.dot(d.counts, [len(s) for s in d.sequences])) for d in dereps if len(d)
        )
        logger.info(
            "%i total bases in %i reads from %i samples will be used for "
            "learning the error rates.",
            n_bases,
            n_reads,
            len(dereps),
        )

        model = ErrorModel.from_phred()
        for round_nbr in range(1, self.max_rounds + 1):
            counts = np.zeros_like(model.rates)
            for derep in dereps:
                result = self.denoiser.denoise(derep, model)
                counts += transition_counts(derep, result, model.max_quality)

            new_model = estimate_error_model(counts)
            converged = new_model.is_close(model)
            model = new_model
            logger.debug("Error model learning round %i finished", round_nbr)
            if converged:
                break

        return model
