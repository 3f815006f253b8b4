"""Model for the read counts surviving each pipeline stage.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import pydantic

from asvflow.report.models.base import SampleReport


class TrackingRow(SampleReport):
    """Model for tracking the read counts of a sample through all stages."""

    input_reads: int = pydantic.Field(
        ...,
        ge=0,
        description="The number of raw input read pairs.",
    )

    filtered_reads: int = pydantic.Field(
        ...,
        ge=0,
        description="The number of read pairs passing quality filtering.",
    )

    denoised_reads: int = pydantic.Field(
        ...,
        ge=0,
        description="The number of forward reads assigned to a sequence variant.",
    )

    merged_reads: int = pydantic.Field(
        ...,
        ge=0,
        description="The number of read pairs merged into a sequence variant.",
    )

    non_chimeric_reads: int = pydantic.Field(
        ...,
        ge=0,
        description="The number of merged read pairs in non-chimeric sequence variants.",
    )

    @classmethod
    def zeros(cls, sample_id: str, input_reads: int = 0) -> TrackingRow:
        """Return the row of a sample that has no reads after the input."""
        return cls(
            sample_id=sample_id,
            input_reads=input_reads,
            filtered_reads=0,
            denoised_reads=0,
            merged_reads=0,
            non_chimeric_reads=0,
        )

    def counts(self) -> tuple[int, int, int, int, int]:
        """Return the read counts in stage order."""
        return (
            self.input_reads,
            self.filtered_reads,
            self.denoised_reads,
            self.merged_reads,
            self.non_chimeric_reads,
        )

    @property
    def is_non_increasing(self) -> bool:
        """Check that no stage has more reads than the stage before it."""
        c = self.counts()
        return all(a >= b for a, b in zip(c, c[1:]))

    @pydantic.computed_field(return_type=float)  # type: ignore
    @property
    def fraction_non_chimeric(self) -> float:
        """Return the fraction of input reads in non-chimeric sequence variants."""
        if self.input_reads == 0:
            return 0.0
        return self.non_chimeric_reads / self.input_reads
