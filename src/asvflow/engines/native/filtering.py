"""Quality trimming and filtering of read pairs.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import dnaio
import numpy as np

from asvflow.config import FilterParameters
from asvflow.dereplication import phred_scores
from asvflow.engines.protocol import FilterResult

logger = logging.getLogger(__name__)

MIN_READ_LENGTH = 20


def expected_errors(record: dnaio.SequenceRecord) -> float:
    """Return the expected number of errors of a read."""
    return float(np.power(10.0, -phred_scores(record) / 10.0).sum())


def trim_and_filter(
    record: dnaio.SequenceRecord,
    trunc_len: int,
    trim_left: int,
    max_ee: float,
    trunc_q: int,
) -> Optional[dnaio.SequenceRecord]:
    """Trim a read and check it against the quality filters.

    The steps are applied in this order: truncation at the first base with a
    quality of at most `trunc_q`, truncation to `trunc_len` (shorter reads are
    discarded), removal of `trim_left` bases, the minimum length check, the
    ambiguous base check and finally the expected error check.

    :param record: the read
    :param trunc_len: the length to truncate to, 0 to disable
    :param trim_left: the number of bases to remove from the start
    :param max_ee: the maximum number of expected errors
    :param trunc_q: the truncation quality score
    :returns: the trimmed read or None if the read was discarded
    """
    low_quality = np.flatnonzero(phred_scores(record) <= trunc_q)
    end = int(low_quality[0]) if low_quality.size else len(record)

    if trunc_len > 0:
        if end < trunc_len:
            return None
        end = trunc_len

    if end - trim_left < MIN_READ_LENGTH:
        return None

    trimmed = record[trim_left:end]
    if "N" in trimmed.sequence:
        return None
    if expected_errors(trimmed) > max_ee:
        return None
    return trimmed


class NativeFilteringEngine:
    """Filter read pairs and write the survivors as gzipped fastq."""

    def filter(
        self,
        raw_forward: Path,
        raw_reverse: Path,
        filtered_forward: Path,
        filtered_reverse: Path,
        params: FilterParameters,
    ) -> FilterResult:
        """Quality trim and filter a pair of read files.

        Output files without any read are removed.
        """
        input_count = 0
        output_count = 0
        with (
            dnaio.open(raw_forward, raw_reverse) as reader,
            dnaio.open(filtered_forward, filtered_reverse, mode="w") as writer,
        ):
            for r1, r2 in reader:
                input_count += 1
                f1 = trim_and_filter(
                    r1,
                    params.trunc_len_f,
                    params.trim_left_f,
                    params.max_ee_f,
                    params.trunc_q,
                )
                if f1 is None:
                    continue
                f2 = trim_and_filter(
                    r2,
                    params.trunc_len_r,
                    params.trim_left_r,
                    params.max_ee_r,
                    params.trunc_q,
                )
                if f2 is None:
                    continue
                writer.write(f1, f2)
                output_count += 1

        logger.debug(
            "Filtered %s: %i of %i read pairs passed",
            Path(raw_forward).name,
            output_count,
            input_count,
        )

        if output_count == 0:
            Path(filtered_forward).unlink(missing_ok=True)
            Path(filtered_reverse).unlink(missing_ok=True)
            return FilterResult(None, None, input_count, 0)

        return FilterResult(
            Path(filtered_forward), Path(filtered_reverse), input_count, output_count
        )
