"""Copyright © 2025 Pixelgen Technologies AB."""

from asvflow.config.parameters import (
    ChimeraMethod,
    ChimeraParameters,
    DenoiseParameters,
    FailurePolicy,
    FilterParameters,
    MergeParameters,
    PipelineParameters,
    PoolMethod,
)
from asvflow.config.utils import load_parameter_file

__all__ = [
    "ChimeraMethod",
    "ChimeraParameters",
    "DenoiseParameters",
    "FailurePolicy",
    "FilterParameters",
    "MergeParameters",
    "PipelineParameters",
    "PoolMethod",
    "load_parameter_file",
]
