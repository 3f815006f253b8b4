"""Tests for the filtering stage.

Copyright © 2025 Pixelgen Technologies AB.
"""

import pytest

from asvflow.config import FailurePolicy, FilterParameters
from asvflow.engines.native import NativeFilteringEngine
from asvflow.engines.protocol import FilterResult
from asvflow.exception import NoReadsPassedFilterError, SampleProcessingError
from asvflow.filtering import filter_samples


def test_filter_samples(two_samples, tmp_path):
    outcome = filter_samples(
        two_samples,
        NativeFilteringEngine(),
        FilterParameters(),
        tmp_path / "filtered_f",
        tmp_path / "filtered_r",
    )

    s1, s2 = (outcome.results[s.sample_id] for s in two_samples)
    assert (s1.input_count, s1.output_count) == (8, 8)
    assert s1.passed
    assert s1.filtered_forward == tmp_path / "filtered_f" / "s1_R1.fastq.gz"
    assert s1.filtered_reverse == tmp_path / "filtered_r" / "s1_R2.fastq.gz"
    assert (s2.input_count, s2.output_count) == (7, 0)
    assert not s2.passed


def test_filter_samples_no_reads_pass(clean_samples, tmp_path):
    with pytest.raises(
        NoReadsPassedFilterError, match="No reads passed the filter"
    ) as exc_info:
        filter_samples(
            clean_samples,
            NativeFilteringEngine(),
            FilterParameters(trunc_len_f=100),
            tmp_path / "filtered_f",
            tmp_path / "filtered_r",
        )
    assert exc_info.value.exit_code == 2
    assert exc_info.value.n_samples == 2


class FailingFilteringEngine:
    def __init__(self, fail_on):
        self.fail_on = fail_on
        self.inner = NativeFilteringEngine()

    def filter(
        self, raw_forward, raw_reverse, filtered_forward, filtered_reverse, params
    ) -> FilterResult:
        if raw_forward.name == self.fail_on:
            raise OSError("corrupt gzip stream")
        return self.inner.filter(
            raw_forward, raw_reverse, filtered_forward, filtered_reverse, params
        )


def test_filter_samples_failure_policies(clean_samples, tmp_path):
    engine = FailingFilteringEngine("s2_R1.fastq.gz")
    with pytest.raises(SampleProcessingError, match="filtering"):
        filter_samples(
            clean_samples,
            engine,
            FilterParameters(),
            tmp_path / "filtered_f",
            tmp_path / "filtered_r",
        )

    outcome = filter_samples(
        clean_samples,
        engine,
        FilterParameters(),
        tmp_path / "filtered_f",
        tmp_path / "filtered_r",
        failure_policy=FailurePolicy.CONTINUE,
    )
    assert list(outcome.results) == ["s1_R1.fastq.gz"]
    assert list(outcome.failures) == ["s2_R1.fastq.gz"]


class BrokenFilteringEngine:
    def filter(self, raw_forward, *args):
        raise OSError(f"cannot read {raw_forward.name}")


def test_filter_samples_all_samples_fail(clean_samples, tmp_path):
    with pytest.raises(SampleProcessingError, match="s1_R1.fastq.gz") as exc_info:
        filter_samples(
            clean_samples,
            BrokenFilteringEngine(),
            FilterParameters(),
            tmp_path / "filtered_f",
            tmp_path / "filtered_r",
            threads=2,
            failure_policy=FailurePolicy.CONTINUE,
        )
    assert exc_info.value.stage == "filtering"
    assert not isinstance(exc_info.value, NoReadsPassedFilterError)
