"""Reference implementations of the asvflow engines.

Copyright © 2025 Pixelgen Technologies AB.
"""

from asvflow.engines.native.bimera import NativeChimeraEngine
from asvflow.engines.native.dada import NativeDenoisingEngine
from asvflow.engines.native.error_model import NativeErrorModelEngine
from asvflow.engines.native.filtering import NativeFilteringEngine
from asvflow.engines.native.merging import NativeMergingEngine

__all__ = [
    "NativeChimeraEngine",
    "NativeDenoisingEngine",
    "NativeErrorModelEngine",
    "NativeFilteringEngine",
    "NativeMergingEngine",
]
