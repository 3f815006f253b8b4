"""Writing the abundance and tracking tables.

Both tables are tab separated and unquoted.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable

from asvflow.exception import ConfigurationError
from asvflow.report.models import TrackingRow
from asvflow.seqtable import SequenceTable
from asvflow.tracking import tracking_to_dataframe
from asvflow.types import PathType

logger = logging.getLogger(__name__)

ABUNDANCE_INDEX_LABEL = "#OTU ID"


def check_output_path(path: PathType) -> Path:
    """Check that an output path is not a directory.

    :raises ConfigurationError: if the path is a directory
    """
    path = Path(path)
    if path.is_dir():
        raise ConfigurationError(f"Output path is a directory: {path}")
    return path


def prepare_output_path(path: PathType) -> Path:
    """Check that an output path can be written, removing an existing file.

    :param path: the output file
    :returns: the output file as a Path
    :raises ConfigurationError: if the path is a directory
    """
    path = check_output_path(path)
    if path.exists():
        logger.debug("Replacing existing output file %s", path)
        path.unlink()
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def write_abundance_table(table: SequenceTable, path: PathType) -> Path:
    """Write the sequence table with sequences as rows and samples as columns.

    :param table: the sequence table
    :param path: the output file
    :returns: the written file
    """
    path = prepare_output_path(path)
    data = table.data.T
    data.index.name = None
    data.columns.name = None
    data.to_csv(
        path,
        sep="\t",
        index_label=ABUNDANCE_INDEX_LABEL,
        quoting=csv.QUOTE_NONE,
    )
    logger.info(
        "Wrote %i sequence variants of %i samples to %s",
        data.shape[0],
        data.shape[1],
        path,
    )
    return path


def write_tracking_table(rows: Iterable[TrackingRow], path: PathType) -> Path:
    """Write the read tracking table with an empty first header cell.

    :param rows: the tracking rows
    :param path: the output file
    :returns: the written file
    """
    path = prepare_output_path(path)
    df = tracking_to_dataframe(rows)
    df.to_csv(path, sep="\t", index_label="", quoting=csv.QUOTE_NONE)
    logger.info("Wrote read tracking of %i samples to %s", df.shape[0], path)
    return path
