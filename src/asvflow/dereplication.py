"""Dereplication of fastq reads into unique sequences.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

import dnaio
import numpy as np
import numpy.typing as npt

from asvflow.types import PathType

logger = logging.getLogger(__name__)

PHRED_OFFSET = 33


def phred_scores(record: dnaio.SequenceRecord) -> npt.NDArray[np.int64]:
    """Return the Phred quality scores of a read as integers."""
    qual = np.frombuffer(record.qualities_as_bytes(), dtype=np.uint8)
    return qual.astype(np.int64) - PHRED_OFFSET


@dataclass(frozen=True, eq=False)
class Dereplication:
    """The unique sequences of a read file.

    Uniques are ordered by decreasing count, ties are broken by sequence.

    :ivar sequences: the unique sequences
    :ivar counts: the number of reads of each unique
    :ivar qualities: the per-position mean quality score of each unique
    :ivar read_map: for every read, in file order, the index of its unique
    """

    sequences: tuple[str, ...]
    counts: npt.NDArray[np.int64]
    qualities: tuple[npt.NDArray[np.float64], ...]
    read_map: npt.NDArray[np.int64]

    def __post_init__(self):
        if len(self.sequences) != len(self.counts):
            raise ValueError("Every unique sequence needs exactly one count")
        self.counts.flags.writeable = False
        self.read_map.flags.writeable = False
        for q in self.qualities:
            q.flags.writeable = False

    def __len__(self) -> int:
        return len(self.sequences)

    @property
    def read_count(self) -> int:
        """Return the number of reads that were dereplicated."""
        return int(self.read_map.shape[0])

    @classmethod
    def empty(cls) -> Dereplication:
        """Return the dereplication of a file without reads."""
        return cls(
            sequences=(),
            counts=np.zeros(0, dtype=np.int64),
            qualities=(),
            read_map=np.zeros(0, dtype=np.int64),
        )


def dereplicate_records(records: Iterable[dnaio.SequenceRecord]) -> Dereplication:
    """Collapse identical read sequences.

    :param records: the reads to dereplicate
    :returns: the dereplicated reads
    """
    index: dict[str, int] = {}
    counts: list[int] = []
    quality_sums: list[npt.NDArray[np.float64]] = []
    first_pass_map: list[int] = []

    for record in records:
        seq = record.sequence
        idx = index.get(seq)
        if idx is None:
            idx = len(counts)
            index[seq] = idx
            counts.append(0)
            quality_sums.append(np.zeros(len(seq), dtype=np.float64))
        counts[idx] += 1
        quality_sums[idx] += phred_scores(record)
        first_pass_map.append(idx)

    if not counts:
        return Dereplication.empty()

    seqs = list(index.keys())
    order = sorted(range(len(seqs)), key=lambda i: (-counts[i], seqs[i]))
    # position of every first-seen unique in the final ordering
    rank = np.empty(len(order), dtype=np.int64)
    rank[order] = np.arange(len(order), dtype=np.int64)

    return Dereplication(
        sequences=tuple(seqs[i] for i in order),
        counts=np.array([counts[i] for i in order], dtype=np.int64),
        qualities=tuple(quality_sums[i] / counts[i] for i in order),
        read_map=rank[np.array(first_pass_map, dtype=np.int64)],
    )


def dereplicate_fastq(path: PathType) -> Dereplication:
    """Dereplicate the reads of a (gzipped) fastq file."""
    with dnaio.open(path) as reader:
        derep = dereplicate_records(reader)
    logger.debug(
        "Dereplicated %i reads into %i unique sequences from %s",
        derep.read_count,
        len(derep),
        path,
    )
    return derep
