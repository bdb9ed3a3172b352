"""Bounded, atomic batch writes with partial-success reporting."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog

from transactwise.config import get_settings
from transactwise.errors import DocumentStoreError
from transactwise.store.documents import DocumentStore, WriteOp

logger = structlog.get_logger(__name__)

T = TypeVar("T")


@dataclass
class PersistenceReport(Generic[T]):
    """Outcome of a bulk write.

    Batches commit independently, so a run can stop part way through:
    ``committed`` records are durable, ``failed`` records were not written.
    """

    attempted: int
    committed: list[T] = field(default_factory=list)
    failed: list[T] = field(default_factory=list)
    batches_committed: int = 0
    batches_total: int = 0
    error: Exception | None = None

    @property
    def succeeded(self) -> int:
        return len(self.committed)

    @property
    def complete(self) -> bool:
        return self.error is None and self.succeeded == self.attempted


class BulkPersistenceCoordinator:
    """Partitions writes into store-sized batches and commits them in order.

    Each batch is all-or-nothing. The first failed batch stops the run;
    batches before it stay committed. Records are never split across
    batches, so multi-document records (such as a bidirectional link) stay
    atomic.
    """

    def __init__(self, store: DocumentStore, batch_size: int | None = None):
        self._store = store
        self.batch_size = batch_size if batch_size is not None else get_settings().write_batch_size
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    def plan(
        self, records: Sequence[T], build_writes: Callable[[T], list[WriteOp]]
    ) -> list[tuple[list[T], list[WriteOp]]]:
        """Group records into batches whose write count stays within the limit."""
        batches: list[tuple[list[T], list[WriteOp]]] = []
        batch_records: list[T] = []
        batch_writes: list[WriteOp] = []

        for record in records:
            writes = build_writes(record)
            if len(writes) > self.batch_size:
                raise ValueError(
                    f"Record needs {len(writes)} writes, more than the batch size {self.batch_size}"
                )
            if batch_writes and len(batch_writes) + len(writes) > self.batch_size:
                batches.append((batch_records, batch_writes))
                batch_records, batch_writes = [], []
            batch_records.append(record)
            batch_writes.extend(writes)

        if batch_records:
            batches.append((batch_records, batch_writes))
        return batches

    async def persist(
        self,
        records: Sequence[T],
        build_writes: Callable[[T], list[WriteOp]],
        on_batch_committed: Callable[[list[T]], None] | None = None,
    ) -> PersistenceReport[T]:
        """Write records batch by batch.

        Args:
            records: Records to persist, in order.
            build_writes: Produces the document writes for one record.
            on_batch_committed: Called with each batch's records right after
                its commit succeeds, before the next batch starts.

        Returns:
            PersistenceReport with committed and failed records.
        """
        batches = self.plan(records, build_writes)
        report: PersistenceReport[T] = PersistenceReport(
            attempted=len(records), batches_total=len(batches)
        )

        for number, (batch_records, batch_writes) in enumerate(batches):
            try:
                await self._store.commit(batch_writes)
            except DocumentStoreError as e:
                logger.error(
                    "batch_commit_failed",
                    batch=number,
                    batches_total=len(batches),
                    records=len(batch_records),
                    error=str(e),
                )
                report.error = e
                for remaining_records, _ in batches[number:]:
                    report.failed.extend(remaining_records)
                break

            report.committed.extend(batch_records)
            report.batches_committed += 1
            if on_batch_committed is not None:
                on_batch_committed(batch_records)
            logger.debug("batch_persisted", batch=number, records=len(batch_records))

        logger.info(
            "bulk_write_finished",
            attempted=report.attempted,
            succeeded=report.succeeded,
            batches_committed=report.batches_committed,
            batches_total=report.batches_total,
        )
        return report
