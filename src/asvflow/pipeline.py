"""The paired-end denoising pipeline.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from asvflow.chimeras import remove_chimeras
from asvflow.config import PipelineParameters
from asvflow.denoising import run_denoising
from asvflow.engines import Engines, native_engines
from asvflow.exception import SampleProcessingError
from asvflow.filtering import filter_samples
from asvflow.learning import learn_error_models
from asvflow.merging import merge_samples
from asvflow.report.models import TrackingRow
from asvflow.samples import Sample
from asvflow.seqtable import SequenceTable, make_sequence_table
from asvflow.tracking import build_tracking
from asvflow.types import PathType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """The outputs of a pipeline run.

    :ivar samples: every discovered sample, in sample order
    :ivar sequence_table: the merged sequence table before chimera removal
    :ivar nonchimeric_table: the sequence table after chimera removal
    :ivar tracking: the read tracking row of every sample
    :ivar failures: the samples that failed and were skipped
    """

    samples: list[Sample]
    sequence_table: SequenceTable
    nonchimeric_table: SequenceTable
    tracking: list[TrackingRow]
    failures: dict[str, SampleProcessingError] = field(default_factory=dict)


def run_pipeline(
    samples: Sequence[Sample],
    params: PipelineParameters,
    filtered_dir_f: PathType,
    filtered_dir_r: PathType,
    engines: Optional[Engines] = None,
) -> PipelineResult:
    """Run all stages of the pipeline on the given samples.

    :param samples: the samples to process, in sample order
    :param params: the pipeline parameters
    :param filtered_dir_f: the directory of the filtered forward reads
    :param filtered_dir_r: the directory of the filtered reverse reads
    :param engines: the engines to use, the native engines by default
    :returns: the sequence tables and the read tracking
    :raises NoReadsPassedFilterError: if no read of any sample passed the filter
    :raises SampleProcessingError: if a sample fails and the failure policy is
        abort
    """
    engines = engines or native_engines()
    samples = list(samples)
    failures: dict[str, SampleProcessingError] = {}
    per_sample = {
        "threads": params.threads,
        "failure_policy": params.failure_policy,
    }

    logger.info("Processing %i samples", len(samples))

    logger.info("1) Filtering")
    filtered = filter_samples(
        samples,
        engines.filtering,
        params.filtering,
        filtered_dir_f,
        filtered_dir_r,
        **per_sample,
    )
    failures.update(filtered.failures)
    passed = {s: o for s, o in filtered.results.items() if o.passed}

    logger.info("2) Learning Error Rates")
    models = learn_error_models(
        passed.values(), engines.error_model, params.denoising.n_reads_learn
    )

    logger.info("3) Denoise samples")
    denoised = run_denoising(
        passed, engines.denoising, models, params.denoising, **per_sample
    )
    failures.update(denoised.failures)

    merged = merge_samples(
        denoised.results,
        engines.merging,
        params.merging.min_overlap,
        **per_sample,
    )
    failures.update(merged.failures)
    table = make_sequence_table(merged.results)

    logger.info("4) Remove chimeras (method = %s)", params.chimeras.method.value)
    nochim = remove_chimeras(
        table,
        engines.chimeras,
        params.chimeras.method,
        params.chimeras.min_parent_fold,
    )

    tracking = build_tracking(
        samples,
        filtered.results,
        {s: d.denoised_read_count for s, d in denoised.results.items()},
        table,
        nochim,
    )
    if failures:
        logger.warning(
            "%i samples failed and were skipped: %s",
            len(failures),
            ", ".join(failures),
        )

    return PipelineResult(
        samples=samples,
        sequence_table=table,
        nonchimeric_table=nochim,
        tracking=tracking,
        failures=failures,
    )
