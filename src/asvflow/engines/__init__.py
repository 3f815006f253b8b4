"""Engines doing the statistical work of the pipeline stages.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

from dataclasses import dataclass

from asvflow.engines.native import (
    NativeChimeraEngine,
    NativeDenoisingEngine,
    NativeErrorModelEngine,
    NativeFilteringEngine,
    NativeMergingEngine,
)
from asvflow.engines.protocol import (
    ChimeraEngine,
    DenoisingEngine,
    ErrorModelEngine,
    FilteringEngine,
    MergingEngine,
)


@dataclass(frozen=True)
class Engines:
    """The set of engines used by a pipeline run."""

    filtering: FilteringEngine
    error_model: ErrorModelEngine
    denoising: DenoisingEngine
    merging: MergingEngine
    chimeras: ChimeraEngine


def native_engines() -> Engines:
    """Return the reference engine implementations."""
    denoiser = NativeDenoisingEngine()
    return Engines(
        filtering=NativeFilteringEngine(),
        error_model=NativeErrorModelEngine(denoiser=denoiser),
        denoising=denoiser,
        merging=NativeMergingEngine(),
        chimeras=NativeChimeraEngine(),
    )
