"""Divisive amplicon denoising of dereplicated reads.

The unique sequences are visited by decreasing abundance. A unique joins the
variant most likely to have produced it through sequencing errors unless it
is too abundant to be explained by those errors, in which case it becomes a
new variant. Priors make a unique easier to accept as a variant.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import numpy.typing as npt
from scipy import stats

from asvflow.dereplication import Dereplication
from asvflow.engines.protocol import DenoiseResult, ErrorModel

logger = logging.getLogger(__name__)

OMEGA_A = 1e-40
OMEGA_P = 1e-4
OMEGA_C = 1e-40
MIN_RATE = 1e-12

_BASE_CODES = np.full(256, -1, dtype=np.int64)
for _code, _base in enumerate("ACGT"):
    _BASE_CODES[ord(_base)] = _code


def encode_sequence(seq: str) -> npt.NDArray[np.int64]:
    """Encode a sequence as integers, A=0 C=1 G=2 T=3 and -1 for anything else."""
    return _BASE_CODES[np.frombuffer(seq.encode("ascii"), dtype=np.uint8)]


def abundance_pvalue(reads: int, expected: float, prior: bool = False) -> float:
    """Return the probability of observing at least `reads` copies of a unique.

    Without a prior the probability is conditioned on the unique having been
    observed at all, which makes singletons never significant.

    :param reads: the number of reads of the unique
    :param expected: the number of reads expected from sequencing errors
    :param prior: whether the unique is a prior sequence
    """
    if not prior and reads <= 1:
        return 1.0
    if expected <= 0:
        return 0.0
    pval = float(stats.poisson.sf(reads - 1, expected))
    if prior:
        return pval
    return pval / float(-np.expm1(-expected))


class _LogLambda:
    """Log probabilities of producing one sequence from another."""

    def __init__(self, derep: Dereplication, error_model: ErrorModel):
        self.log_rates = np.log(np.clip(error_model.rates, MIN_RATE, None))
        max_quality = error_model.max_quality
        self.codes = [encode_sequence(s) for s in derep.sequences]
        self.quality_index = [
            np.clip(np.rint(q), 0, max_quality).astype(np.int64)
            for q in derep.qualities
        ]

    def __call__(self, unique: int, center: int) -> float:
        u = self.codes[unique]
        c = self.codes[center]
        if u.shape != c.shape or (u < 0).any() or (c < 0).any():
            return -np.inf
        return float(self.log_rates[c * 4 + u, self.quality_index[unique]].sum())


class NativeDenoisingEngine:
    """Infer sequence variants with a greedy abundance test."""

    def __init__(
        self, omega_a: float = OMEGA_A, omega_p: float = OMEGA_P, omega_c: float = OMEGA_C
    ):
        """Initialize the engine.

        :param omega_a: the p-value below which a unique becomes a new variant
        :param omega_p: the same threshold for uniques that are priors
        :param omega_c: uniques less likely than this under their variant are
            left uncorrected
        """
        self.omega_a = omega_a
        self.omega_p = omega_p
        self.omega_c = omega_c

    def denoise(
        self,
        derep: Dereplication,
        error_model: ErrorModel,
        priors: Optional[frozenset[str]] = None,
    ) -> DenoiseResult:
        """Infer the sequence variants of one read file."""
        n = len(derep)
        if n == 0:
            return DenoiseResult(
                variants=(),
                abundances=np.zeros(0, dtype=np.int64),
                assignments=np.zeros(0, dtype=np.int64),
            )

        priors = priors or frozenset()
        counts = derep.counts
        log_lambda = _LogLambda(derep, error_model)

        centers = [0]
        cluster_totals = [int(counts[0])]
        for i in range(1, n):
            scores = [
                np.log(total) + log_lambda(i, c)
                for c, total in zip(centers, cluster_totals)
            ]
            best = int(np.argmax(scores))
            expected = float(np.exp(scores[best]))
            is_prior = derep.sequences[i] in priors
            pval = abundance_pvalue(int(counts[i]), expected, prior=is_prior)
            if pval < (self.omega_p if is_prior else self.omega_a):
                centers.append(i)
                cluster_totals.append(int(counts[i]))
            elif np.isfinite(scores[best]):
                cluster_totals[best] += int(counts[i])

        assignments = self._reassign(derep, log_lambda, centers)

        abundances = np.zeros(len(centers), dtype=np.int64)
        assigned = assignments >= 0
        np.add.at(abundances, assignments[assigned], counts[assigned])

        # order variants by decreasing abundance, ties by sequence
        variants = [derep.sequences[c] for c in centers]
        order = sorted(range(len(centers)), key=lambda k: (-abundances[k], variants[k]))
        rank = np.empty(len(order), dtype=np.int64)
        rank[order] = np.arange(len(order), dtype=np.int64)
        assignments = np.where(assigned, rank[np.where(assigned, assignments, 0)], -1)

        logger.debug("Denoised %i uniques into %i variants", n, len(centers))
        return DenoiseResult(
            variants=tuple(variants[k] for k in order),
            abundances=abundances[order],
            assignments=assignments.astype(np.int64),
        )

    def _reassign(
        self, derep: Dereplication, log_lambda: _LogLambda, centers: list[int]
    ) -> npt.NDArray[np.int64]:
        counts = derep.counts
        center_index = {c: k for k, c in enumerate(centers)}
        assignments = np.full(len(derep), -1, dtype=np.int64)

        # first pass totals: every unique to its most likely center
        best_scores = np.full(len(derep), -np.inf)
        for i in range(len(derep)):
            if i in center_index:
                assignments[i] = center_index[i]
                continue
            scores = [np.log(counts[c]) + log_lambda(i, c) for c in centers]
            best = int(np.argmax(scores))
            if np.isfinite(scores[best]):
                assignments[i] = best
                best_scores[i] = scores[best] - np.log(counts[centers[best]])

        totals = np.zeros(len(centers), dtype=np.int64)
        np.add.at(totals, assignments[assignments >= 0], counts[assignments >= 0])

        for i in range(len(derep)):
            if i in center_index or assignments[i] < 0:
                continue
            expected = float(totals[assignments[i]] * np.exp(best_scores[i]))
            if abundance_pvalue(int(counts[i]), expected) < self.omega_c:
                assignments[i] = -1
        return assignments
