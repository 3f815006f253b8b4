"""Tests for the sequence table.

Copyright © 2025 Pixelgen Technologies AB.
"""

import warnings

import pandas as pd
import pytest

from asvflow.engines.protocol import MergedResult
from asvflow.seqtable import SequenceTable, make_sequence_table


def test_from_abundances_orders_columns_by_total_then_first_appearance():
    table = SequenceTable.from_abundances(
        {
            "s1": {"AAA": 5, "CCC": 3},
            "s2": {"AAA": 4, "GGG": 3, "TTT": 10},
        }
    )

    assert table.samples == ["s1", "s2"]
    assert table.sequences == ["TTT", "AAA", "CCC", "GGG"]
    assert table.data.loc["s1"].tolist() == [0, 5, 3, 0]
    assert table.data.loc["s2"].tolist() == [10, 4, 0, 3]


def test_from_abundances_drops_zero_counts():
    table = SequenceTable.from_abundances(
        {"s1": {"AAA": 5, "CCC": 0}, "s2": {}}
    )
    assert table.sequences == ["AAA"]
    assert table.samples == ["s1", "s2"]
    assert table.row_sums().to_dict() == {"s1": 5, "s2": 0}


def test_sequence_table_is_not_modified_through_data():
    table = SequenceTable.from_abundances({"s1": {"AAA": 5}})
    data = table.data
    data.loc["s1", "AAA"] = 100
    assert table.column_totals()["AAA"] == 5


def test_sequence_table_copies_its_input_without_warnings():
    df = pd.DataFrame({"AAA": [5, 1], "CCC": [0, 2]}, index=["s1", "s2"])
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        table = SequenceTable(df)
    df.loc["s1", "AAA"] = 100
    assert table.sample_counts("s1").tolist() == [5, 0]


def test_subset_and_drop_sequences():
    table = SequenceTable.from_abundances({"s1": {"AAA": 5, "CCC": 3, "GGG": 1}})

    assert table.subset(["GGG", "AAA"]).sequences == ["AAA", "GGG"]
    assert table.drop_sequences(["CCC"]).sequences == ["AAA", "GGG"]
    with pytest.raises(KeyError):
        table.subset(["TTT"])


def test_duplicate_samples_are_rejected():
    data = pd.DataFrame([[1], [2]], index=["s1", "s1"], columns=["AAA"])
    with pytest.raises(ValueError, match="duplicate samples"):
        SequenceTable(data)


def test_make_sequence_table():
    table = make_sequence_table(
        {
            "s1": MergedResult({"AAA": 5, "CCC": 3}),
            "s2": MergedResult({}, rejected_pairs=4),
        }
    )
    assert table.shape == (2, 2)
    assert table.sample_counts("s2").sum() == 0
    assert repr(table) == "SequenceTable(2 samples, 2 sequences)"
