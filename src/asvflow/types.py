"""
This module contains helper typehints for the asvflow package.

Copyright (c) 2025 Pixelgen Technologies AB.
"""
from __future__ import annotations

import os
from pathlib import Path, PurePath
from typing import Mapping, Union

PathType = Union[str, Path, PurePath, os.PathLike]

# sequence -> number of reads
AbundanceMap = Mapping[str, int]

# sample id -> sequence -> number of reads
SampleAbundances = Mapping[str, AbundanceMap]
