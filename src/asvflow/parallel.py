"""Running per-sample work on a pool of worker threads.

Copyright © 2025 Pixelgen Technologies AB.
"""

from __future__ import annotations

import logging
from concurrent import futures
from dataclasses import dataclass, field
from typing import Callable, Generic, Mapping, TypeVar

from asvflow.config import FailurePolicy
from asvflow.exception import SampleProcessingError
from asvflow.utils import get_thread_pool_executor, resolve_thread_count

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class StageOutcome(Generic[R]):
    """The results of a per-sample stage.

    :ivar results: the result of every sample that succeeded, in input order
    :ivar failures: the error of every sample that failed
    """

    results: dict[str, R] = field(default_factory=dict)
    failures: dict[str, SampleProcessingError] = field(default_factory=dict)


def _wrap_error(
    stage: str, sample_id: str, exc: BaseException
) -> SampleProcessingError:
    if isinstance(exc, SampleProcessingError):
        return exc
    error = SampleProcessingError(str(exc), sample_id=sample_id, stage=stage)
    error.__cause__ = exc
    return error


def _record_failure(
    outcome: StageOutcome,
    error: SampleProcessingError,
    failure_policy: FailurePolicy,
) -> None:
    if failure_policy is FailurePolicy.ABORT:
        raise error
    logger.error("%s. The sample is excluded from the next stages.", error)
    outcome.failures[error.sample_id] = error


def run_per_sample(
    stage: str,
    items: Mapping[str, T],
    func: Callable[[str, T], R],
    threads: int = 1,
    failure_policy: FailurePolicy = FailurePolicy.ABORT,
) -> StageOutcome[R]:
    """Apply `func` to every sample, optionally on worker threads.

    With a single thread the samples are processed in order in the calling
    thread. The results are returned in the order of `items` whatever the
    order of completion.

    :param stage: the stage name used in error messages
    :param items: the input of every sample, keyed by sample id
    :param func: the function to call with the sample id and its input
    :param threads: the number of worker threads, 0 for all cpus
    :param failure_policy: whether a failing sample stops the run
    :returns: the per-sample results and failures
    :raises SampleProcessingError: when a sample fails and the policy is abort
    """
    outcome: StageOutcome[R] = StageOutcome()
    n_threads = resolve_thread_count(threads)

    if n_threads == 1 or len(items) <= 1:
        for sample_id, item in items.items():
            try:
                outcome.results[sample_id] = func(sample_id, item)
            except Exception as exc:
                _record_failure(
                    outcome, _wrap_error(stage, sample_id, exc), failure_policy
                )
        return outcome

    results: dict[str, R] = {}
    with get_thread_pool_executor(n_threads) as executor:
        jobs = {
            executor.submit(func, sample_id, item): sample_id
            for sample_id, item in items.items()
        }
        for job in futures.as_completed(jobs):
            sample_id = jobs[job]
            exc = job.exception()
            if exc is not None:
                if failure_policy is FailurePolicy.ABORT:
                    for pending in jobs:
                        pending.cancel()
                _record_failure(
                    outcome, _wrap_error(stage, sample_id, exc), failure_policy
                )
                continue
            results[sample_id] = job.result()

    outcome.results = {s: results[s] for s in items if s in results}
    return outcome
