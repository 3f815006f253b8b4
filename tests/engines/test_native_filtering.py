"""Tests for the native read pair filtering.

Copyright © 2025 Pixelgen Technologies AB.
"""

import dnaio
import pytest

from asvflow.config import FilterParameters
from asvflow.engines.native.filtering import (
    NativeFilteringEngine,
    expected_errors,
    trim_and_filter,
)

from conftest import write_fastq


def record(seq, qual=None):
    return dnaio.SequenceRecord("r", seq, qual or "I" * len(seq))


SEQ = "ACGTACGTAC" * 4


def test_expected_errors():
    # Phred 10 is an error probability of 0.1
    assert expected_errors(record("ACGT", "++++")) == pytest.approx(0.4)


def test_trim_and_filter_keeps_good_read():
    result = trim_and_filter(record(SEQ), trunc_len=0, trim_left=0, max_ee=2.0, trunc_q=2)
    assert result is not None
    assert result.sequence == SEQ


def test_trim_and_filter_truncates_at_low_quality():
    # '#' is Phred 2
    qual = "I" * 30 + "#" + "I" * 9
    result = trim_and_filter(record(SEQ, qual), 0, 0, 2.0, 2)
    assert result.sequence == SEQ[:30]


def test_trim_and_filter_truncation_length():
    assert trim_and_filter(record(SEQ), 25, 0, 2.0, 2).sequence == SEQ[:25]
    assert trim_and_filter(record(SEQ), 41, 0, 2.0, 2) is None


def test_trim_and_filter_trim_left():
    result = trim_and_filter(record(SEQ), 30, 5, 2.0, 2)
    assert result.sequence == SEQ[5:30]
    assert result.qualities == "I" * 25


def test_trim_and_filter_too_short():
    assert trim_and_filter(record(SEQ[:19]), 0, 0, 2.0, 2) is None
    assert trim_and_filter(record(SEQ), 0, 21, 2.0, 2) is None


def test_trim_and_filter_rejects_ambiguous_bases():
    seq = SEQ[:10] + "N" + SEQ[11:]
    assert trim_and_filter(record(seq), 0, 0, 2.0, 2) is None
    # the N is trimmed away
    assert trim_and_filter(record(seq), 0, 11, 2.0, 2) is not None


def test_trim_and_filter_expected_errors():
    qual = "+" * 40
    assert trim_and_filter(record(SEQ, qual), 0, 0, 2.0, 2) is None
    assert trim_and_filter(record(SEQ, qual), 0, 0, 4.5, 2) is not None


def test_native_filtering_engine(tmp_path):
    fwd = write_fastq(
        tmp_path / "s_R1.fastq.gz",
        [("a", SEQ, "I" * 40), ("b", SEQ, "I" * 40), ("c", SEQ, "I" * 40)],
    )
    rev = write_fastq(
        tmp_path / "s_R2.fastq.gz",
        [("a", SEQ, "I" * 40), ("b", SEQ[:15], "I" * 15), ("c", SEQ, "I" * 40)],
    )
    out_f = tmp_path / "filtered_f.fastq.gz"
    out_r = tmp_path / "filtered_r.fastq.gz"

    result = NativeFilteringEngine().filter(fwd, rev, out_f, out_r, FilterParameters())

    assert result.input_count == 3
    assert result.output_count == 2
    assert result.filtered_forward == out_f
    with dnaio.open(out_f, out_r) as reader:
        names = [(r1.name, r2.name) for r1, r2 in reader]
    assert names == [("a", "a"), ("c", "c")]


def test_native_filtering_engine_removes_empty_output(tmp_path):
    fwd = write_fastq(tmp_path / "s_R1.fastq.gz", [("a", SEQ, "I" * 40)])
    rev = write_fastq(tmp_path / "s_R2.fastq.gz", [("a", SEQ, "I" * 40)])
    out_f = tmp_path / "filtered_f.fastq.gz"
    out_r = tmp_path / "filtered_r.fastq.gz"

    result = NativeFilteringEngine().filter(
        fwd, rev, out_f, out_r, FilterParameters(trunc_len_f=50)
    )

    assert result.input_count == 1
    assert result.output_count == 0
    assert result.filtered_forward is None
    assert not out_f.exists()
    assert not out_r.exists()
