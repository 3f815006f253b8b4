"""Learning the shared error models of the forward and reverse reads.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from asvflow.engines.protocol import ErrorModel, ErrorModelEngine
from asvflow.filtering import FilterOutcome
from asvflow.samples import Direction
from asvflow.utils import timer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorModels:
    """The error model of each read direction."""

    forward: ErrorModel
    reverse: ErrorModel

    def for_direction(self, direction: Direction) -> ErrorModel:
        """Return the error model of a read direction."""
        return self.forward if direction is Direction.FORWARD else self.reverse


@timer
def learn_error_models(
    outcomes: Iterable[FilterOutcome],
    engine: ErrorModelEngine,
    n_reads_learn: int,
) -> ErrorModels:
    """Learn one error model per read direction.

    Only samples with filtered reads are used, in sample order. Both models
    are complete when this returns.

    :param outcomes: the filter outcome of every sample
    :param engine: the error model engine
    :param n_reads_learn: the number of reads to learn from, 0 for all
    :returns: the forward and reverse error models
    """
    passed = [o for o in outcomes if o.passed]
    if not passed:
        raise ValueError("Cannot learn error rates without filtered reads")

    logger.info("Learning forward error rates")
    forward = engine.learn([o.filtered_forward for o in passed], n_reads_learn)
    logger.info("Learning reverse error rates")
    reverse = engine.learn([o.filtered_reverse for o in passed], n_reads_learn)
    return ErrorModels(forward=forward, reverse=reverse)
