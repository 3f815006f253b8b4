"""
Copyright (c) 2025 Pixelgen Technologies AB.
"""

from pathlib import Path
from typing import Any

from ruamel import yaml

from asvflow.types import PathType

YAML_SUFFIXES = (".yaml", ".yml")


def load_parameter_file(path: PathType) -> dict[str, Any]:
    """
    Load the nested parameter sections of a yaml config file.

    An empty file holds no parameters.

    :param path: path to the yaml file
    :raises FileExistsError: If the path is not a file
    :raises TypeError: If the path is not a yaml file or does not hold a mapping
    :returns: the parameter values by section
    """
    path = Path(path)
    if not path.is_file():
        raise FileExistsError(f"{path} is not a file")

    if path.suffix not in YAML_SUFFIXES:
        raise TypeError(f"{path} is not a yaml file")

    data = yaml.YAML(typ="safe").load(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TypeError(f"{path} does not contain a mapping of parameters")
    return data
