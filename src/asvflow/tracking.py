"""Accounting of the reads surviving each pipeline stage.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

import pandas as pd

from asvflow.filtering import FilterOutcome
from asvflow.report.models import TrackingRow
from asvflow.samples import Sample
from asvflow.seqtable import SequenceTable

logger = logging.getLogger(__name__)

TRACKING_FIELDS = [
    "input_reads",
    "filtered_reads",
    "denoised_reads",
    "merged_reads",
    "non_chimeric_reads",
]
TRACKING_COLUMNS = ["input", "filtered", "denoised", "merged", "non-chimeric"]


def _row_sums(table: SequenceTable) -> dict[str, int]:
    return {sample_id: int(n) for sample_id, n in table.row_sums().items()}


def build_tracking(
    samples: Sequence[Sample],
    filter_outcomes: Mapping[str, FilterOutcome],
    denoised_counts: Mapping[str, int],
    table: SequenceTable,
    nochim: SequenceTable,
) -> list[TrackingRow]:
    """Build the tracking row of every sample.

    All counts are looked up by sample id. A sample missing from a stage has
    zero reads in that stage, and a sample without filtered reads has zero
    reads in every later stage.

    :param samples: every discovered sample, in sample order
    :param filter_outcomes: the filter outcome of every sample that was filtered
    :param denoised_counts: the number of denoised forward reads per sample
    :param table: the sequence table before chimera removal
    :param nochim: the sequence table after chimera removal
    :returns: one tracking row per sample, in sample order
    """
    merged = _row_sums(table)
    non_chimeric = _row_sums(nochim)

    rows = []
    for sample in samples:
        sample_id = sample.sample_id
        outcome = filter_outcomes.get(sample_id)
        if outcome is None:
            rows.append(TrackingRow.zeros(sample_id))
            continue
        if outcome.output_count == 0:
            rows.append(TrackingRow.zeros(sample_id, outcome.input_count))
            continue

        row = TrackingRow(
            sample_id=sample_id,
            input_reads=outcome.input_count,
            filtered_reads=outcome.output_count,
            denoised_reads=denoised_counts.get(sample_id, 0),
            merged_reads=merged.get(sample_id, 0),
            non_chimeric_reads=non_chimeric.get(sample_id, 0),
        )
        if not row.is_non_increasing:
            logger.warning(
                "Read counts of sample %s increase between stages: %s",
                sample_id,
                ", ".join(str(c) for c in row.counts()),
            )
        rows.append(row)
    return rows


def tracking_to_dataframe(rows: Iterable[TrackingRow]) -> pd.DataFrame:
    """Return the tracking rows as a table indexed by sample id."""
    columns = dict(zip(TRACKING_FIELDS, TRACKING_COLUMNS))
    return TrackingRow.to_dataframe(rows, columns).astype("int64")
