"""Top-level package for asvflow.

Copyright © 2025 Pixelgen Technologies AB.
"""

from importlib import metadata

__version__ = "0.0.0"

try:
    __version__ = metadata.version("asvflow")
except metadata.PackageNotFoundError:
    pass
