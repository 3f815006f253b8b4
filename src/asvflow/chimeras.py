"""Removal of chimeric sequences from the sequence table.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging

from asvflow.config import ChimeraMethod
from asvflow.engines.protocol import ChimeraEngine
from asvflow.seqtable import SequenceTable

logger = logging.getLogger(__name__)


def remove_chimeras(
    table: SequenceTable,
    engine: ChimeraEngine,
    method: ChimeraMethod = ChimeraMethod.CONSENSUS,
    min_parent_fold: float = 1.0,
) -> SequenceTable:
    """Remove the chimeric sequences of a table.

    :param table: the sequence table
    :param engine: the chimera detection engine
    :param method: how chimeras are detected across samples
    :param min_parent_fold: the minimum fold abundance of a parent, at least 1
    :returns: the table itself for method `none`, otherwise a new table with
        a subset of its sequences
    :raises ValueError: if `min_parent_fold` is below 1 or the engine added
        sequences to the table
    """
    if min_parent_fold < 1:
        raise ValueError(f"min_parent_fold must be at least 1, got {min_parent_fold}")

    method = ChimeraMethod(method)
    if method is ChimeraMethod.NONE:
        logger.info("Chimera removal is disabled")
        return table

    nochim = engine.detect_chimeras(table, method, min_parent_fold)
    extra = set(nochim.sequences).difference(table.sequences)
    if extra or nochim.samples != table.samples:
        raise ValueError(
            "Chimera removal must keep the samples and a subset of the sequences"
        )

    logger.info(
        "Removed %i chimeric sequences, %i sequences remain",
        table.shape[1] - nochim.shape[1],
        nochim.shape[1],
    )
    return nochim
