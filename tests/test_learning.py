"""Tests for learning the error models.

Copyright © 2025 Pixelgen Technologies AB.
"""

import pytest

from asvflow.config import FilterParameters
from asvflow.engines.native import NativeFilteringEngine
from asvflow.engines.protocol import ErrorModel
from asvflow.filtering import filter_samples
from asvflow.learning import ErrorModels, learn_error_models
from asvflow.samples import Direction


class RecordingErrorModelEngine:
    def __init__(self):
        self.calls = []

    def learn(self, paths, n_reads):
        self.calls.append((list(paths), n_reads))
        return ErrorModel.from_phred()


def test_learn_error_models_uses_passed_samples(two_samples, tmp_path):
    filtered = filter_samples(
        two_samples,
        NativeFilteringEngine(),
        FilterParameters(),
        tmp_path / "filtered_f",
        tmp_path / "filtered_r",
    )
    engine = RecordingErrorModelEngine()

    models = learn_error_models(filtered.results.values(), engine, 1000)

    assert engine.calls == [
        ([tmp_path / "filtered_f" / "s1_R1.fastq.gz"], 1000),
        ([tmp_path / "filtered_r" / "s1_R2.fastq.gz"], 1000),
    ]
    assert isinstance(models, ErrorModels)
    assert models.for_direction(Direction.FORWARD) is models.forward
    assert models.for_direction(Direction.REVERSE) is models.reverse


def test_learn_error_models_without_reads():
    with pytest.raises(ValueError, match="without filtered reads"):
        learn_error_models([], RecordingErrorModelEngine(), 0)
