"""Discovery of paired-end samples in the input directories.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path

from asvflow.exception import ConfigurationError
from asvflow.types import PathType

logger = logging.getLogger(__name__)

FASTQ_GZ_SUFFIX = ".fastq.gz"


class Direction(str, enum.Enum):
    """The read direction of a file in a read pair."""

    FORWARD = "forward"
    REVERSE = "reverse"


@dataclass(frozen=True)
class Sample:
    """A sample with its raw forward and reverse read files.

    The sample id is the basename of the forward file. It is used as the
    sample label in every table written by the pipeline.
    """

    sample_id: str
    forward: Path
    reverse: Path

    @classmethod
    def from_files(cls, forward: PathType, reverse: PathType) -> Sample:
        """Create a sample named after its forward file."""
        forward = Path(forward)
        return cls(sample_id=forward.name, forward=forward, reverse=Path(reverse))

    def path(self, direction: Direction) -> Path:
        """Return the raw file of the given read direction."""
        return self.forward if direction is Direction.FORWARD else self.reverse


def list_fastq_files(directory: PathType) -> list[Path]:
    """Return the gzipped fastq files in a directory, sorted by file name."""
    return sorted(
        (
            p
            for p in Path(directory).iterdir()
            if p.is_file() and p.name.endswith(FASTQ_GZ_SUFFIX)
        ),
        key=lambda p: p.name,
    )


def discover_samples(forward_dir: PathType, reverse_dir: PathType) -> list[Sample]:
    """Pair the forward and reverse read files of two input directories.

    Files are matched by their position in the sorted listing of each
    directory. The returned order is the canonical sample order of a run.

    :param forward_dir: directory with the forward `.fastq.gz` files
    :param reverse_dir: directory with the reverse `.fastq.gz` files
    :returns: the discovered samples
    :raises ConfigurationError: if a directory does not exist, has no
        matching files or the file counts of the two directories differ
    """
    forward_dir = Path(forward_dir)
    reverse_dir = Path(reverse_dir)
    for directory in (forward_dir, reverse_dir):
        if not directory.is_dir():
            raise ConfigurationError(
                f"Input directory does not exist: {directory}"
            )

    forward_files = list_fastq_files(forward_dir)
    reverse_files = list_fastq_files(reverse_dir)
    if not forward_files:
        raise ConfigurationError(
            "No input forward files with the expected filename format found."
        )
    if len(forward_files) != len(reverse_files):
        raise ConfigurationError(
            "Different numbers of forward and reverse .fastq.gz files: "
            f"{len(forward_files)} and {len(reverse_files)}."
        )

    samples = [Sample.from_files(f, r) for f, r in zip(forward_files, reverse_files)]
    logger.info("Found %i paired-end samples", len(samples))
    for sample in samples:
        logger.debug(
            "Sample %s: %s %s", sample.sample_id, sample.forward, sample.reverse
        )
    return samples
