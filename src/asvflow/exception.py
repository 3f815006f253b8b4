"""
This module contains all the extra exception classes and handling
defined by asvflow

Copyright (c) 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations


class ConfigurationError(Exception):
    """Raised when the pipeline inputs or parameters are invalid.

    These errors are always reported before any sample is processed.
    """


class NoReadsPassedFilterError(Exception):
    """
    Raised when filtering removed every read of every sample.

    Attributes:
        msg: the error message to output
        n_samples: the number of samples that were filtered
    """

    exit_code = 2

    def __init__(self, msg: str, n_samples: int):
        super().__init__(msg)
        self.msg = msg
        self.n_samples = n_samples


class SampleProcessingError(Exception):
    """Raised when a single sample fails in one of the per-sample stages."""

    def __init__(
        self,
        *args,
        sample_id: str,
        stage: str,
        message: str | None = None,
    ) -> None:
        """Initialize the exception.

        :param args: Positional arguments to pass to the base
        :param sample_id: The sample that failed
        :param stage: The name of the stage in which the sample failed
        :param message: A custom message to use
        """
        super().__init__(*args)
        self.sample_id = sample_id
        self.stage = stage
        cause = f": {args[0]}" if args else ""
        self.message = message or (
            f'Processing of sample "{self.sample_id}" failed in stage '
            f'"{self.stage}"{cause}'
        )

    def __str__(self):
        """Return a string representation of the exception."""
        return self.message
