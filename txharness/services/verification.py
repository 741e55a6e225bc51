"""Post-run checks over committed state, read through fresh read-only units of work."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from txharness.core.errors import VerificationError
from txharness.repositories import BaseRepository
from txharness.services.partitioning import expected_ids
from txharness.services.store import HARNESS_REPOSITORIES
from txharness.uow import SQLAlchemyReadOnlyUnitOfWork

log = logging.getLogger(__name__)

# Ids listed in a mismatch message
_MAX_LISTED = 10


@dataclass(frozen=True, slots=True)
class TableReport:
    """Verified state of one table.

    :param table: Table name.
    :param row_count: Rows returned by the full scan.
    :param first_id: First id in scan order.
    :param last_id: Last id in scan order.
    :param scan_ids: Every id in scan order.
    """

    table: str
    row_count: int
    first_id: int | None
    last_id: int | None
    scan_ids: tuple[int, ...] = ()


def _listed(ids: Sequence[int]) -> str:
    shown = ", ".join(str(i) for i in ids[:_MAX_LISTED])
    return f"[{shown}{', ...' if len(ids) > _MAX_LISTED else ''}]"


def check_ids(table: str, ids: Iterable[int], expected: range) -> None:
    """Assert ``ids`` covers ``expected`` exactly, each id once.

    :raises VerificationError: Naming counts and the offending ids.
    """
    counts = Counter(ids)
    total = sum(counts.values())
    wanted = set(expected)
    duplicates = sorted(k for k, c in counts.items() if c > 1)
    missing = sorted(wanted - counts.keys())
    unexpected = sorted(counts.keys() - wanted)

    if total == len(expected) and not (duplicates or missing or unexpected):
        return

    problems = [f"expected {len(expected)} rows, found {total}"]
    if missing:
        problems.append(f"missing {len(missing)} ids {_listed(missing)}")
    if unexpected:
        problems.append(f"unexpected ids {_listed(unexpected)}")
    if duplicates:
        problems.append(f"duplicated ids {_listed(duplicates)}")
    raise VerificationError(table=table, detail="; ".join(problems))


def verify_table(
    repo_cls: type[BaseRepository[Any]],
    expected: range,
    *,
    probe_id: int = 1,
) -> TableReport:
    """Verify one table with a point lookup and a full scan.

    :raises NotFound: If ``probe_id`` is absent.
    :raises VerificationError: If the scan does not match ``expected``.
    """
    table = repo_cls.model.__tablename__
    with SQLAlchemyReadOnlyUnitOfWork() as uow:
        repo = repo_cls(uow)
        repo.get(probe_id)
        # Read ids while the transaction is open; rollback expires the rows.
        scan_ids = tuple(int(row.id) for row in repo.get_all())

    check_ids(table, scan_ids, expected)
    log.info("Verified %s: %d rows", table, len(scan_ids))
    return TableReport(
        table=table,
        row_count=len(scan_ids),
        first_id=scan_ids[0] if scan_ids else None,
        last_id=scan_ids[-1] if scan_ids else None,
        scan_ids=scan_ids,
    )


def verify_run(
    workers: int,
    batch_size: int,
    *,
    probe_id: int = 1,
    repositories: Sequence[type[BaseRepository[Any]]] = HARNESS_REPOSITORIES,
) -> list[TableReport]:
    """Verify every harness table after all workers joined.

    Each table expects exactly ``workers * batch_size`` rows with ids
    ``1 .. workers*batch_size``.

    :returns: One :class:`TableReport` per table, in ``repositories`` order.
    :raises NotFound: If the probe row is missing from a table.
    :raises VerificationError: On any count or id mismatch.
    """
    expected = expected_ids(workers, batch_size)
    return [verify_table(repo_cls, expected, probe_id=probe_id) for repo_cls in repositories]
