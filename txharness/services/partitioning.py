"""Coordination-free assignment of disjoint primary-key ranges to workers."""

from __future__ import annotations


def partition_ids(worker_index: int, batch_size: int) -> range:
    """Return the ids owned by worker ``worker_index`` (1-based).

    Worker ``y`` inserting ``M`` rows owns ``(y-1)*M + 1 .. (y-1)*M + M``. The
    ranges of distinct workers never overlap, whatever order they run in.

    :param worker_index: 1-based worker index.
    :type worker_index: int
    :param batch_size: Rows per entity type inserted by each worker.
    :type batch_size: int
    :returns: Contiguous id range of length ``batch_size``.
    :rtype: range
    :raises ValueError: If either argument is lower than 1.
    """
    if worker_index < 1:
        raise ValueError(f"worker_index must be >= 1, got {worker_index}")
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    start = (worker_index - 1) * batch_size + 1
    return range(start, start + batch_size)


def expected_ids(workers: int, batch_size: int) -> range:
    """Return the union of every worker's partition, ``1 .. workers*batch_size``."""
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return range(1, workers * batch_size + 1)
