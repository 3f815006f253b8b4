"""Protocols and value types of the engines used by asvflow.

The pipeline orchestrates the engines but never looks into how they compute
their results. Any object implementing these protocols can be plugged into a
run through :class:`asvflow.engines.Engines`.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

import numpy as np
import numpy.typing as npt

from asvflow.config import ChimeraMethod, FilterParameters
from asvflow.dereplication import Dereplication
from asvflow.types import AbundanceMap

if TYPE_CHECKING:
    from asvflow.seqtable import SequenceTable

NUCLEOTIDES = "ACGT"
N_TRANSITIONS = len(NUCLEOTIDES) ** 2
DEFAULT_MAX_QUALITY = 41


def transition_index(from_base: str, to_base: str) -> int:
    """Return the row of the error model for a base transition."""
    return NUCLEOTIDES.index(from_base) * 4 + NUCLEOTIDES.index(to_base)


@dataclass(frozen=True)
class FilterResult:
    """The outcome of filtering one read pair file.

    The filtered paths are None when no read pair survived.
    """

    filtered_forward: Optional[Path]
    filtered_reverse: Optional[Path]
    input_count: int
    output_count: int


@dataclass(frozen=True, eq=False)
class ErrorModel:
    """Transition probabilities of the sequencer per quality score.

    `rates[i, q]` is the probability of reading the base transition
    `i = from * 4 + to` (bases ordered ACGT) at quality score `q`. The matrix
    is read-only once the model is created.
    """

    rates: npt.NDArray[np.float64]

    def __post_init__(self):
        if self.rates.ndim != 2 or self.rates.shape[0] != N_TRANSITIONS:
            raise ValueError(
                f"An error model needs {N_TRANSITIONS} rows, got shape {self.rates.shape}"
            )
        rates = np.array(self.rates, dtype=np.float64, copy=True)
        if not ((rates >= 0.0) & (rates <= 1.0)).all():
            raise ValueError("Error rates must be probabilities in [0, 1]")
        rates.flags.writeable = False
        object.__setattr__(self, "rates", rates)

    @property
    def max_quality(self) -> int:
        """Return the highest quality score covered by the model."""
        return int(self.rates.shape[1] - 1)

    @classmethod
    def from_phred(cls, max_quality: int = DEFAULT_MAX_QUALITY) -> ErrorModel:
        """Create the error model implied by the nominal Phred scores."""
        q = np.arange(max_quality + 1, dtype=np.float64)
        err = np.power(10.0, -q / 10.0)
        rates = np.empty((N_TRANSITIONS, max_quality + 1), dtype=np.float64)
        for i in range(4):
            for j in range(4):
                rates[i * 4 + j] = 1.0 - err if i == j else err / 3.0
        return cls(rates)

    def is_close(self, other: ErrorModel, rtol: float = 1e-3) -> bool:
        """Check if two error models are numerically the same."""
        return self.rates.shape == other.rates.shape and bool(
            np.allclose(self.rates, other.rates, rtol=rtol, atol=1e-9)
        )


@dataclass(frozen=True, eq=False)
class DenoiseResult:
    """The sequence variants inferred from one read file.

    :ivar variants: the inferred sequence variants
    :ivar abundances: the number of reads assigned to each variant
    :ivar assignments: for every unique of the dereplicated input, the index
        of its variant or -1 when the unique was left uncorrected
    """

    variants: tuple[str, ...]
    abundances: npt.NDArray[np.int64]
    assignments: npt.NDArray[np.int64]

    def __post_init__(self):
        self.abundances.flags.writeable = False
        self.assignments.flags.writeable = False

    @property
    def denoised_read_count(self) -> int:
        """Return the number of reads assigned to a variant."""
        return int(self.abundances.sum())

    def as_abundance_map(self) -> dict[str, int]:
        """Return the abundance of every variant."""
        return {
            variant: int(abundance)
            for variant, abundance in zip(self.variants, self.abundances)
        }


@dataclass(frozen=True)
class MergedResult:
    """The merged sequences of one sample and their abundances."""

    abundances: AbundanceMap
    rejected_pairs: int = 0

    @property
    def merged_read_count(self) -> int:
        """Return the number of read pairs that were merged."""
        return sum(self.abundances.values())


class FilteringEngine(Protocol):
    """Protocol for read pair filtering."""

    def filter(
        self,
        raw_forward: Path,
        raw_reverse: Path,
        filtered_forward: Path,
        filtered_reverse: Path,
        params: FilterParameters,
    ) -> FilterResult:
        """Quality trim and filter a pair of read files.

        A read pair is kept only when both reads pass the filters.

        :param raw_forward: the forward reads
        :param raw_reverse: the reverse reads
        :param filtered_forward: where to write the filtered forward reads
        :param filtered_reverse: where to write the filtered reverse reads
        :param params: the filter settings
        :returns: the filtered files and the read counts
        """
        ...


class ErrorModelEngine(Protocol):
    """Protocol for learning an error model."""

    def learn(self, filtered_files: Sequence[Path], target_read_count: int) -> ErrorModel:
        """Learn an error model from the reads of one direction.

        :param filtered_files: the filtered files, in sample order
        :param target_read_count: the number of reads to learn from, 0 for all
        :returns: the learned error model
        """
        ...


class DenoisingEngine(Protocol):
    """Protocol for sequence variant inference."""

    def denoise(
        self,
        derep: Dereplication,
        error_model: ErrorModel,
        priors: Optional[frozenset[str]] = None,
    ) -> DenoiseResult:
        """Infer the sequence variants of one read file.

        :param derep: the dereplicated reads
        :param error_model: the error model of the read direction
        :param priors: sequences that are more likely to be real variants
        :returns: the inferred variants and the assignment of every unique
        """
        ...


class MergingEngine(Protocol):
    """Protocol for merging denoised read pairs."""

    def merge(
        self,
        denoised_forward: DenoiseResult,
        derep_forward: Dereplication,
        denoised_reverse: DenoiseResult,
        derep_reverse: Dereplication,
        min_overlap: int,
    ) -> MergedResult:
        """Merge the denoised forward and reverse reads of a sample.

        :param denoised_forward: the forward variants
        :param derep_forward: the dereplicated forward reads
        :param denoised_reverse: the reverse variants
        :param derep_reverse: the dereplicated reverse reads
        :param min_overlap: the minimum number of overlapping bases
        :returns: the merged sequences with their abundances
        """
        ...


class ChimeraEngine(Protocol):
    """Protocol for chimera detection."""

    def detect_chimeras(
        self, table: SequenceTable, method: ChimeraMethod, min_parent_fold: float
    ) -> SequenceTable:
        """Return the table without the chimeric sequences.

        :param table: the sequence table
        :param method: how to combine the evidence of the samples
        :param min_parent_fold: the minimum fold abundance of a parent
        :returns: a table with a subset of the columns of `table`
        """
        ...
