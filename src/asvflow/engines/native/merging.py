"""Merging of denoised forward and reverse reads.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Optional

from asvflow.dereplication import Dereplication
from asvflow.engines.protocol import DenoiseResult, MergedResult
from asvflow.utils import reverse_complement

logger = logging.getLogger(__name__)


def merge_pair_sequences(
    forward: str, reverse_rc: str, min_overlap: int
) -> Optional[str]:
    """Merge a forward sequence with the reverse complement of its mate.

    The longest exact overlap between the end of `forward` and the start of
    `reverse_rc` is used.

    :param forward: the forward sequence
    :param reverse_rc: the reverse complemented reverse sequence
    :param min_overlap: the minimum number of overlapping bases
    :returns: the merged sequence or None if the sequences do not overlap
    """
    max_overlap = min(len(forward), len(reverse_rc))
    for overlap in range(max_overlap, min_overlap - 1, -1):
        if forward[len(forward) - overlap :] == reverse_rc[:overlap]:
            return forward + reverse_rc[overlap:]
    return None


class NativeMergingEngine:
    """Merge read pairs through their denoised variants."""

    def merge(
        self,
        denoised_forward: DenoiseResult,
        derep_forward: Dereplication,
        denoised_reverse: DenoiseResult,
        derep_reverse: Dereplication,
        min_overlap: int,
    ) -> MergedResult:
        """Merge the denoised forward and reverse reads of a sample.

        Read pairs where either read was left uncorrected, or whose variants
        do not overlap, are rejected.
        """
        if derep_forward.read_count != derep_reverse.read_count:
            raise ValueError(
                "Forward and reverse reads differ in number: "
                f"{derep_forward.read_count} and {derep_reverse.read_count}"
            )

        forward_variants = denoised_forward.assignments[derep_forward.read_map]
        reverse_variants = denoised_reverse.assignments[derep_reverse.read_map]
        pairs = Counter(zip(forward_variants.tolist(), reverse_variants.tolist()))

        abundances: dict[str, int] = defaultdict(int)
        rejected = 0
        for (fwd, rev), count in sorted(pairs.items()):
            if fwd < 0 or rev < 0:
                rejected += count
                continue
            merged = merge_pair_sequences(
                denoised_forward.variants[fwd],
                reverse_complement(denoised_reverse.variants[rev]),
                min_overlap,
            )
            if merged is None:
                rejected += count
                continue
            abundances[merged] += count

        ordered = dict(sorted(abundances.items(), key=lambda kv: (-kv[1], kv[0])))
        logger.debug(
            "Merged %i read pairs into %i sequences, %i pairs rejected",
            sum(ordered.values()),
            len(ordered),
            rejected,
        )
        return MergedResult(abundances=ordered, rejected_pairs=rejected)
