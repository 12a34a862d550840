"""Final stage of a query stream: merge small record batches and report stats."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Sequence


class StatsCollector(ABC):
    """Told when a partition's output stream starts and when it is done."""

    @abstractmethod
    def start(self, partition: int, plan: Any) -> None: ...

    @abstractmethod
    def stop(self, partition: int, plan: Any) -> None: ...


@dataclass(frozen=True)
class RecordBatch:
    """Equal-length named columns."""

    columns: dict[str, list] = field(default_factory=dict)

    def __post_init__(self) -> None:
        lengths = {name: len(values) for name, values in self.columns.items()}
        if len(set(lengths.values())) > 1:
            raise ValueError(f"columns differ in length: {lengths}")

    def num_rows(self) -> int:
        return len(next(iter(self.columns.values()), []))

    def column(self, name: str) -> list:
        return self.columns[name]

    def project(self, names: Iterable[str]) -> RecordBatch:
        return RecordBatch({name: self.columns[name] for name in names})

    @classmethod
    def concat(cls, batches: Sequence[RecordBatch]) -> RecordBatch:
        """Join batches with the same column names, in order."""
        if not batches:
            raise ValueError("cannot concatenate zero batches")
        names = list(batches[0].columns)
        for batch in batches[1:]:
            if list(batch.columns) != names:
                raise ValueError(
                    f"batch columns {list(batch.columns)} do not match {names}"
                )
        return cls({name: [v for b in batches for v in b.columns[name]] for name in names})


class FinalStream:
    """Merges incoming batches until they exceed three quarters of the target size.

    Collectors are started on construction and stopped on :meth:`close`.
    """

    def __init__(
        self,
        inner: Iterable[RecordBatch],
        stats_collectors: Iterable[StatsCollector],
        target_batch_size: int,
        partition: int,
        execution_plan: Any,
    ) -> None:
        self._inner = iter(inner)
        self._collectors = list(stats_collectors)
        self._target_batch_size = target_batch_size
        self._partition = partition
        self._plan = execution_plan
        self._buffered: list[RecordBatch] = []
        self._buffered_rows = 0
        self._exhausted = False
        self._closed = False
        for collector in self._collectors:
            collector.start(partition, execution_plan)

    def _flush(self) -> RecordBatch:
        batches, self._buffered = self._buffered, []
        self._buffered_rows = 0
        return RecordBatch.concat(batches)

    def __iter__(self) -> Iterator[RecordBatch]:
        return self

    def __next__(self) -> RecordBatch:
        threshold = self._target_batch_size * 3 // 4
        while True:
            if self._buffered_rows > threshold:
                return self._flush()
            if self._exhausted:
                raise StopIteration
            batch = next(self._inner, None)
            if batch is None:
                self._exhausted = True
                if not self._buffered:
                    raise StopIteration
                return self._flush()
            self._buffered_rows += batch.num_rows()
            self._buffered.append(batch)

    def close(self) -> None:
        """Stop the collectors; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        for collector in self._collectors:
            collector.stop(self._partition, self._plan)

    def __enter__(self) -> FinalStream:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __del__(self) -> None:
        if getattr(self, "_closed", True) is False:
            self.close()