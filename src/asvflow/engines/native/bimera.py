"""De novo detection of bimeric sequences.

A bimera is a sequence made of the start of one more abundant sequence (its
left parent) and the end of another (its right parent).

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

import pandas as pd

from asvflow.config import ChimeraMethod

if TYPE_CHECKING:
    from asvflow.seqtable import SequenceTable

logger = logging.getLogger(__name__)

MIN_PARENT_ABUNDANCE = 8
MIN_SAMPLE_FRACTION = 0.9


def _shared_prefix(a: str, b: str) -> int:
    n = 0
    for x, y in zip(a, b):
        if x != y:
            break
        n += 1
    return n


def _shared_suffix(a: str, b: str) -> int:
    return _shared_prefix(a[::-1], b[::-1])


def is_bimera(query: str, parents: Iterable[str]) -> bool:
    """Check if a sequence can be built from the start and end of two parents.

    :param query: the sequence to test
    :param parents: the candidate parent sequences
    :returns: True if the longest prefix and the longest suffix shared with
        any parent together cover the whole query
    """
    left = 0
    right = 0
    for parent in parents:
        if parent == query:
            continue
        left = max(left, _shared_prefix(query, parent))
        right = max(right, _shared_suffix(query, parent))
        if left + right >= len(query):
            return True
    return False


def flag_bimeras(abundances: pd.Series, min_parent_fold: float) -> set[str]:
    """Return the bimeric sequences of one abundance profile.

    :param abundances: read counts indexed by sequence
    :param min_parent_fold: how many times more abundant a parent must be
    :returns: the sequences flagged as bimeras
    """
    present = abundances[abundances > 0]
    flagged = set()
    for seq, abundance in present.items():
        parents = present.index[
            (
                (present > min_parent_fold * abundance)
                & (present >= MIN_PARENT_ABUNDANCE)
            ).to_numpy()
        ]
        if len(parents) >= 2 and is_bimera(seq, parents):
            flagged.add(seq)
    return flagged


def consensus_flags(
    n_flagged: pd.Series,
    n_present: pd.Series,
    min_sample_fraction: float = MIN_SAMPLE_FRACTION,
) -> pd.Series:
    """Decide which sequences are chimeric from the per-sample verdicts."""
    return (n_flagged >= n_present) | (
        (n_flagged > 0) & (n_flagged >= (n_present - 1) * min_sample_fraction)
    )


class NativeChimeraEngine:
    """Remove bimeras from a sequence table."""

    def detect_chimeras(
        self, table: SequenceTable, method: ChimeraMethod, min_parent_fold: float
    ) -> SequenceTable:
        """Return the table without the bimeric sequences."""
        method = ChimeraMethod(method)
        if method is ChimeraMethod.NONE:
            return table

        if method is ChimeraMethod.POOLED:
            flagged = flag_bimeras(table.column_totals(), min_parent_fold)
        else:
            data = table.data
            n_present = (data > 0).sum(axis=0)
            n_flagged = pd.Series(0, index=data.columns, dtype="int64")
            for sample_id in data.index:
                for seq in flag_bimeras(data.loc[sample_id], min_parent_fold):
                    n_flagged[seq] += 1
            is_chimera = consensus_flags(n_flagged, n_present)
            flagged = set(is_chimera.index[is_chimera])

        logger.info(
            "Identified %i bimeras out of %i input sequences.",
            len(flagged),
            table.shape[1],
        )
        return table.drop_sequences(flagged)
