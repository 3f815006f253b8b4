"""Tests for writing the output tables.

Copyright © 2025 Pixelgen Technologies AB.
"""

import pytest

from asvflow.exception import ConfigurationError
from asvflow.report.models import TrackingRow
from asvflow.report.tables import (
    prepare_output_path,
    write_abundance_table,
    write_tracking_table,
)
from asvflow.seqtable import SequenceTable


def test_write_abundance_table(tmp_path):
    table = SequenceTable.from_abundances(
        {"s1.fastq.gz": {"AAA": 5, "CCC": 3}, "s2.fastq.gz": {"CCC": 1}}
    )
    path = write_abundance_table(table, tmp_path / "table.tsv")

    assert path.read_text().splitlines() == [
        "#OTU ID\ts1.fastq.gz\ts2.fastq.gz",
        "AAA\t5\t0",
        "CCC\t3\t1",
    ]


def test_write_tracking_table(tmp_path):
    rows = [
        TrackingRow(
            sample_id="s1.fastq.gz",
            input_reads=10,
            filtered_reads=8,
            denoised_reads=8,
            merged_reads=7,
            non_chimeric_reads=7,
        ),
        TrackingRow.zeros("s2.fastq.gz", input_reads=4),
    ]
    path = write_tracking_table(rows, tmp_path / "track.tsv")

    assert path.read_text().splitlines() == [
        "\tinput\tfiltered\tdenoised\tmerged\tnon-chimeric",
        "s1.fastq.gz\t10\t8\t8\t7\t7",
        "s2.fastq.gz\t4\t0\t0\t0\t0",
    ]


def test_existing_output_is_replaced(tmp_path):
    path = tmp_path / "table.tsv"
    path.write_text("old content")
    table = SequenceTable.from_abundances({"s1": {"AAA": 1}})

    write_abundance_table(table, path)

    assert "old content" not in path.read_text()


def test_output_path_is_a_directory(tmp_path):
    with pytest.raises(ConfigurationError, match="is a directory"):
        prepare_output_path(tmp_path)
