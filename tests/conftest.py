"""Configuration and shared files/objects for the testing framework.

Copyright © 2025 Pixelgen Technologies AB.
"""

import logging
import random
from pathlib import Path
from typing import Callable, Mapping

import dnaio
import pytest

from asvflow.samples import Sample
from asvflow.utils import reverse_complement

TEMPLATE_LENGTH = 60
READ_LENGTH = 40
HIGH_QUALITY = "I"


def random_sequence(rng: random.Random, length: int = TEMPLATE_LENGTH) -> str:
    """Return a random DNA sequence."""
    return "".join(rng.choice("ACGT") for _ in range(length))


def read_pair(template: str) -> tuple[str, str]:
    """Return the forward and reverse read of an amplicon.

    The reads overlap by 20 bases when merged.
    """
    forward = template[:READ_LENGTH]
    reverse = reverse_complement(template[TEMPLATE_LENGTH - READ_LENGTH :])
    return forward, reverse


def write_fastq(path: Path, reads: list[tuple[str, str, str]]) -> Path:
    """Write (name, sequence, qualities) reads to a gzipped fastq file."""
    with dnaio.open(path, mode="w") as writer:
        for name, seq, qual in reads:
            writer.write(dnaio.SequenceRecord(name, seq, qual))
    return path


@pytest.fixture(name="templates", scope="session")
def templates_fixture() -> dict[str, str]:
    """Return a set of unrelated amplicon sequences."""
    rng = random.Random(42)
    return {name: random_sequence(rng) for name in "ABCD"}


@pytest.fixture(name="write_sample")
def write_sample_fixture(
    templates: dict[str, str],
) -> Callable[..., Sample]:
    """Return a function writing the read pairs of a sample.

    The composition maps template names to the number of read pairs.
    """

    def _write(
        forward_dir: Path,
        reverse_dir: Path,
        name: str,
        composition: Mapping[str, int],
        with_n: bool = False,
    ) -> Sample:
        forward_dir.mkdir(parents=True, exist_ok=True)
        reverse_dir.mkdir(parents=True, exist_ok=True)
        forward_reads = []
        reverse_reads = []
        read_nbr = 0
        for template_name, count in composition.items():
            forward, reverse = read_pair(templates[template_name])
            if with_n:
                forward = forward[:10] + "N" + forward[11:]
            for _ in range(count):
                read_nbr += 1
                read_name = f"{name}.{read_nbr}"
                forward_reads.append((read_name, forward, HIGH_QUALITY * len(forward)))
                reverse_reads.append((read_name, reverse, HIGH_QUALITY * len(reverse)))

        forward_path = write_fastq(forward_dir / f"{name}_R1.fastq.gz", forward_reads)
        reverse_path = write_fastq(reverse_dir / f"{name}_R2.fastq.gz", reverse_reads)
        return Sample.from_files(forward_path, reverse_path)

    return _write


@pytest.fixture(name="input_dirs")
def input_dirs_fixture(tmp_path: Path) -> tuple[Path, Path]:
    """Return empty forward and reverse input directories."""
    forward_dir = tmp_path / "input_f"
    reverse_dir = tmp_path / "input_r"
    forward_dir.mkdir()
    reverse_dir.mkdir()
    return forward_dir, reverse_dir


@pytest.fixture(name="two_samples")
def two_samples_fixture(input_dirs, write_sample) -> list[Sample]:
    """Return two samples where the reads of the second fail filtering."""
    forward_dir, reverse_dir = input_dirs
    return [
        write_sample(forward_dir, reverse_dir, "s1", {"A": 5, "B": 3}),
        write_sample(forward_dir, reverse_dir, "s2", {"A": 4, "C": 3}, with_n=True),
    ]


@pytest.fixture(name="clean_samples")
def clean_samples_fixture(input_dirs, write_sample) -> list[Sample]:
    """Return two samples whose reads all pass filtering."""
    forward_dir, reverse_dir = input_dirs
    return [
        write_sample(forward_dir, reverse_dir, "s1", {"A": 5, "B": 3}),
        write_sample(forward_dir, reverse_dir, "s2", {"A": 4, "C": 3}),
    ]


@pytest.fixture(name="pseudo_samples")
def pseudo_samples_fixture(input_dirs, write_sample) -> list[Sample]:
    """Return three samples where template C is a singleton in the second."""
    forward_dir, reverse_dir = input_dirs
    return [
        write_sample(forward_dir, reverse_dir, "s1", {"A": 5, "C": 3}),
        write_sample(forward_dir, reverse_dir, "s2", {"A": 5, "C": 1}),
        write_sample(forward_dir, reverse_dir, "s3", {"A": 5, "C": 3}),
    ]


@pytest.fixture(autouse=True)
def reset_root_logger():
    """Restore the root logger level after tests that configure logging."""
    root_logger = logging.getLogger()
    level = root_logger.level
    yield
    root_logger.setLevel(level)
