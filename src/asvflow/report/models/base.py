"""Base classes for asvflow report models.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Iterable, Mapping, Self

import pandas as pd
import pydantic


class SampleReport(pydantic.BaseModel):
    """Base class for all per-sample asvflow reports.

    :ivar sample_id: The sample id for which the report is generated.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    sample_id: str

    @classmethod
    def from_json(cls, p: str | os.PathLike) -> Self:
        """Initialize a report from a report file.

        Computed fields in the file are ignored.

        :param p: The path to the report file.
        :return: A report object.
        """
        return cls.model_validate_json(Path(p).read_text())

    def write_json_file(self, p: str | os.PathLike, **kwargs: Any) -> None:
        """Write a JSON serialized report to a file.

        Non-existing intermediate directories in the path will be created.

        :param p: The path to the file to write.
        :param kwargs: Additional arguments to pass to pydantics `model_dump_json`.
        """
        Path(p).resolve().parent.mkdir(parents=True, exist_ok=True)
        Path(p).write_text(self.model_dump_json(**kwargs))

    @classmethod
    def to_dataframe(
        cls, reports: Iterable[Self], columns: Mapping[str, str]
    ) -> pd.DataFrame:
        """Collect reports into a table with one row per sample.

        :param reports: The reports, in row order.
        :param columns: The report fields to include mapped to their column names.
        :return: A dataframe indexed by sample id.
        """
        reports = list(reports)
        return pd.DataFrame(
            [[getattr(r, field) for field in columns] for r in reports],
            index=pd.Index([r.sample_id for r in reports], dtype=object),
            columns=list(columns.values()),
        )
