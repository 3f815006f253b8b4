"""Parameter models for the paired-end denoising pipeline.

All parameters are validated by pydantic before the pipeline starts, so the
stages can rely on them being within range.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import enum
import math
from typing import Any, Self

import pydantic

from asvflow.config.utils import load_parameter_file
from asvflow.types import PathType


class PoolMethod(str, enum.Enum):
    """How samples are pooled during denoising."""

    INDEPENDENT = "independent"
    PSEUDO = "pseudo"


class ChimeraMethod(str, enum.Enum):
    """How chimeric sequence variants are detected across samples."""

    NONE = "none"
    POOLED = "pooled"
    CONSENSUS = "consensus"


class FailurePolicy(str, enum.Enum):
    """What to do when a single sample fails in a per-sample stage."""

    ABORT = "abort"
    CONTINUE = "continue"


class _FrozenModel(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True, extra="forbid")


class FilterParameters(_FrozenModel):
    """Quality trimming and filtering of the raw read pairs."""

    trunc_len_f: int = pydantic.Field(
        0,
        ge=0,
        description=(
            "The position at which to truncate forward reads. Shorter reads are "
            "discarded. 0 disables truncation."
        ),
    )
    trunc_len_r: int = pydantic.Field(
        0,
        ge=0,
        description=(
            "The position at which to truncate reverse reads. Shorter reads are "
            "discarded. 0 disables truncation."
        ),
    )
    trim_left_f: int = pydantic.Field(
        0, ge=0, description="The number of bases to remove from the start of forward reads."
    )
    trim_left_r: int = pydantic.Field(
        0, ge=0, description="The number of bases to remove from the start of reverse reads."
    )
    max_ee_f: float = pydantic.Field(
        2.0,
        ge=0.0,
        description="Forward reads with more expected errors than this are discarded.",
    )
    max_ee_r: float = pydantic.Field(
        2.0,
        ge=0.0,
        description="Reverse reads with more expected errors than this are discarded.",
    )
    trunc_q: int = pydantic.Field(
        2,
        ge=0,
        description="Reads are truncated at the first base with a quality score <= trunc_q.",
    )

    @pydantic.model_validator(mode="after")
    def _check_trim_left(self) -> Self:
        for direction in ("f", "r"):
            trunc_len = getattr(self, f"trunc_len_{direction}")
            trim_left = getattr(self, f"trim_left_{direction}")
            if trunc_len > 0 and trim_left >= trunc_len:
                raise ValueError(
                    f"trim_left_{direction} ({trim_left}) must be smaller than "
                    f"trunc_len_{direction} ({trunc_len})"
                )
        return self


class DenoiseParameters(_FrozenModel):
    """Error model learning and sample denoising."""

    pool_method: PoolMethod = PoolMethod.INDEPENDENT
    n_reads_learn: int = pydantic.Field(
        1_000_000,
        ge=0,
        description="The number of reads used to learn the error model. 0 uses all reads.",
    )
    prior_min_samples: int = pydantic.Field(
        2,
        ge=1,
        description="Pseudo-pooling priors are variants found in at least this many samples.",
    )
    prior_min_abundance: float = pydantic.Field(
        math.inf,
        gt=0,
        description=(
            "Pseudo-pooling priors also include variants with at least this total "
            "abundance. Infinite by default, which never selects anything."
        ),
    )


class MergeParameters(_FrozenModel):
    """Merging of denoised forward and reverse reads."""

    min_overlap: int = pydantic.Field(
        12,
        ge=0,
        description="The minimum overlap required to merge a forward and reverse read.",
    )


class ChimeraParameters(_FrozenModel):
    """Chimera removal from the sequence table."""

    method: ChimeraMethod = ChimeraMethod.CONSENSUS
    min_parent_fold: float = pydantic.Field(
        1.0,
        ge=1.0,
        description=(
            "The minimum abundance of potential parents of a sequence, expressed "
            "as a fold-change versus the abundance of the sequence tested."
        ),
    )


class PipelineParameters(_FrozenModel):
    """All parameters of a paired-end denoising run."""

    filtering: FilterParameters = pydantic.Field(default_factory=FilterParameters)
    denoising: DenoiseParameters = pydantic.Field(default_factory=DenoiseParameters)
    merging: MergeParameters = pydantic.Field(default_factory=MergeParameters)
    chimeras: ChimeraParameters = pydantic.Field(default_factory=ChimeraParameters)
    threads: int = pydantic.Field(
        1,
        ge=0,
        description="The number of worker threads. 0 uses all available cpus.",
    )
    failure_policy: FailurePolicy = FailurePolicy.ABORT

    @classmethod
    def from_yaml(cls, path: PathType, **overrides: Any) -> Self:
        """Load parameters from a yaml file.

        Values in `overrides` take precedence over the values in the file.
        Nested sections are merged key by key.

        :param path: The path to the yaml file
        :param overrides: Parameter values that replace the ones in the file
        :returns: The validated parameters
        """
        data = load_parameter_file(path)
        return cls.model_validate(merge_parameter_dicts(data, overrides))


def merge_parameter_dicts(
    base: dict[str, Any], overrides: dict[str, Any]
) -> dict[str, Any]:
    """Merge two nested parameter dictionaries, `overrides` wins."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_parameter_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged
