"""The sample by sequence variant abundance table.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

import numpy as np
import pandas as pd

from asvflow.engines.protocol import MergedResult
from asvflow.types import SampleAbundances

logger = logging.getLogger(__name__)


class SequenceTable:
    """An immutable sample by sequence abundance table.

    Rows are samples in the order they were given, columns are sequences
    ordered by decreasing total abundance, ties broken by first appearance.
    A table never holds a sequence without any reads.
    """

    def __init__(self, data: pd.DataFrame):
        """Wrap a dataframe of counts.

        :param data: a dataframe with samples as index and sequences as columns
        """
        if data.columns.has_duplicates:
            raise ValueError("A sequence table cannot have duplicate sequences")
        if data.index.has_duplicates:
            raise ValueError("A sequence table cannot have duplicate samples")
        self._data = data.astype(np.int64).copy()
        self._data.index.name = "sample"
        self._data.columns.name = "sequence"

    @classmethod
    def from_abundances(
        cls, abundances: SampleAbundances
    ) -> SequenceTable:
        """Build a table from the sequence abundances of every sample.

        :param abundances: the abundance of each sequence per sample id
        :returns: the sequence table
        """
        samples = list(abundances.keys())
        column_index: dict[str, int] = {}
        for sample_abundances in abundances.values():
            for seq, count in sample_abundances.items():
                if count > 0 and seq not in column_index:
                    column_index[seq] = len(column_index)

        counts = np.zeros((len(samples), len(column_index)), dtype=np.int64)
        for row, sample_abundances in enumerate(abundances.values()):
            for seq, count in sample_abundances.items():
                if count > 0:
                    counts[row, column_index[seq]] += count

        sequences = list(column_index.keys())
        # stable sort keeps first appearance order for ties
        order = np.argsort(-counts.sum(axis=0), kind="stable")
        data = pd.DataFrame(
            counts[:, order],
            index=pd.Index(samples, dtype=object),
            columns=pd.Index([sequences[i] for i in order], dtype=object),
        )
        return cls(data)

    @property
    def data(self) -> pd.DataFrame:
        """Return a copy of the underlying dataframe."""
        return self._data.copy()

    @property
    def samples(self) -> list[str]:
        """Return the sample ids (rows)."""
        return list(self._data.index)

    @property
    def sequences(self) -> list[str]:
        """Return the sequences (columns)."""
        return list(self._data.columns)

    @property
    def shape(self) -> tuple[int, int]:
        """Return the number of samples and sequences."""
        return self._data.shape

    def row_sums(self) -> pd.Series:
        """Return the number of reads of every sample."""
        return self._data.sum(axis=1)

    def column_totals(self) -> pd.Series:
        """Return the number of reads of every sequence."""
        return self._data.sum(axis=0)

    def sample_counts(self, sample_id: str) -> pd.Series:
        """Return the sequence counts of one sample."""
        return self._data.loc[sample_id].copy()

    def subset(self, sequences: Iterable[str]) -> SequenceTable:
        """Return a table with only the given sequences, in table order."""
        keep = set(sequences)
        unknown = keep.difference(self._data.columns)
        if unknown:
            raise KeyError(f"{len(unknown)} sequences are not in the table")
        return SequenceTable(self._data.loc[:, [s in keep for s in self._data.columns]])

    def drop_sequences(self, sequences: Iterable[str]) -> SequenceTable:
        """Return a table without the given sequences."""
        drop = set(sequences)
        return self.subset(s for s in self._data.columns if s not in drop)

    def __repr__(self) -> str:
        n_samples, n_sequences = self.shape
        return f"SequenceTable({n_samples} samples, {n_sequences} sequences)"


def make_sequence_table(merged: Mapping[str, MergedResult]) -> SequenceTable:
    """Assemble the merged results of the samples into one table.

    :param merged: the merged result of every sample, in sample order
    :returns: the sequence table
    """
    table = SequenceTable.from_abundances(
        {sample_id: result.abundances for sample_id, result in merged.items()}
    )
    n_samples, n_sequences = table.shape
    logger.info(
        "Sequence table holds %i sequence variants in %i samples",
        n_sequences,
        n_samples,
    )
    return table
