"""Key/value stress workload that drives a wide-column database session."""

from __future__ import annotations

import random
import sys
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, Optional, Protocol, Sequence, TextIO

from dbstress.byte_sequence import ByteSequence
from dbstress.letter_sequence import LetterSequence
from dbstress.number_sequence import NumberSequence, to_int64, to_uint64

KEYSPACE = "dbstress"
SORT_KEY_LEN = 64
SELECT_INTERVAL = 10000

SCHEMA = (
    """CREATE TABLE kv (
       p text,
       s text,
       v blob,
       PRIMARY KEY (p, s)
    );""",
    """CREATE TABLE rows (
        id int primary key, -- always 0
        rows bigint
    );""",
    "INSERT INTO rows (id, rows) VALUES (0, 0);",
)

COUNT_TABLES_QUERY = (
    "SELECT COUNT(table_name) FROM system_schema.tables WHERE keyspace_name = ?"
)
ROW_COUNT_QUERY = "SELECT rows FROM rows WHERE id = ?"
INSERT_QUERY = "INSERT INTO kv (p, s, v) VALUES (?, ?, ?)"
UPDATE_ROWS_QUERY = "UPDATE rows SET rows = ? WHERE id = ?"
SELECT_ONE_QUERY = "SELECT v FROM kv WHERE p = ? AND s = ?"
SELECT_MANY_QUERY = "SELECT s, v FROM kv WHERE p = ? LIMIT ?"
PARTITION_COUNT_QUERY = "SELECT COUNT(*) FROM kv WHERE p = ?"


class Session(Protocol):
    """A database session executing parameterised statements."""

    def execute(
        self, statement: str, parameters: Sequence[Any] = ()
    ) -> Iterable[Sequence[Any]]: ...


class StressError(Exception):
    """Raised when a stress operation fails."""


@dataclass
class PSV:
    """One partition key, sort key and (optional) value."""

    p: str
    s: str
    v: Optional[bytes] = None


def _first_row(rows: Iterable[Sequence[Any]]) -> Optional[Sequence[Any]]:
    return next(iter(rows), None)


def _go_mod(value: int, divisor: int) -> int:
    remainder = abs(value) % abs(divisor)
    return -remainder if value < 0 else remainder


def _rate(count: int, elapsed: float) -> int:
    if elapsed <= 0:
        return count
    return int(count / elapsed)


def _partition_name(index: int) -> str:
    return f"part-{index}"


class StressDB:
    """Runs insert and select rounds against a session and tracks the row count."""

    def __init__(
        self,
        session: Session,
        concurrency: int = 100,
        partitions: int = 100,
        value_len: int = 1024,
        ops_per_iter: int = 1000,
        rows: int = 0,
    ) -> None:
        self.session = session
        self.concurrency = concurrency
        self.partitions = partitions
        self.value_len = value_len
        self.ops_per_iter = ops_per_iter
        self.rows = rows

    def pre_start(self) -> None:
        """Create the schema if needed and load the stored row count."""
        try:
            row = _first_row(self.session.execute(COUNT_TABLES_QUERY, (KEYSPACE,)))
        except Exception as exc:
            raise StressError(f"failed get table count: {exc}") from exc
        if row is None:
            raise StressError("failed get table count: no result")

        if row[0] != 2:
            try:
                self.load_schema()
            except StressError as exc:
                raise StressError(f"failed to load schema: {exc}") from exc

        try:
            row = _first_row(self.session.execute(ROW_COUNT_QUERY, (0,)))
        except Exception as exc:
            raise StressError(f"error querying row count: {exc}") from exc
        if row is None:
            raise StressError("no entry for row count (should never happen)")
        self.rows = int(row[0])

    def load_schema(self) -> None:
        """Execute every schema statement in order."""
        print("Loading schema")
        for statement in SCHEMA:
            statement = statement.strip()
            if not statement:
                continue
            try:
                self.session.execute(statement)
            except Exception as exc:
                raise StressError(
                    f"error loading schema at '{statement}': {exc}"
                ) from exc

    def _run_concurrently(self, action, entries: Iterable[PSV]) -> None:
        with ThreadPoolExecutor(max_workers=self.concurrency) as pool:
            futures = [pool.submit(action, psv) for psv in entries]
        for future in futures:
            future.result()

    def _insert_one(self, psv: PSV) -> None:
        try:
            self.session.execute(INSERT_QUERY, (psv.p, psv.s, psv.v))
        except Exception as exc:
            raise StressError(f"error inserting entry: {exc}") from exc

    def insert(self) -> int:
        """Insert one round of entries; return the insert rate in rows/sec."""
        entries = self.psv_generator(self.rows, True)
        start = time.perf_counter()
        self._run_concurrently(self._insert_one, entries)
        elapsed = time.perf_counter() - start

        self.rows += self.ops_per_iter
        try:
            self.session.execute(UPDATE_ROWS_QUERY, (self.rows, 0))
        except Exception as exc:
            raise StressError(f"error updating row count: {exc}") from exc
        return _rate(self.ops_per_iter, elapsed)

    def _select_one(self, psv: PSV) -> None:
        try:
            row = _first_row(self.session.execute(SELECT_ONE_QUERY, (psv.p, psv.s)))
        except Exception as exc:
            raise StressError(
                f"select error for p={psv.p} s={psv.s}: {exc}"
            ) from exc
        if row is None:
            raise StressError(f"select error for p={psv.p} s={psv.s}: not found")

    def select_one(self) -> int:
        """Read back one round of previously inserted rows; return rows/sec."""
        max_start = self.rows - self.ops_per_iter
        if max_start == 0:
            raise StressError("not enough rows to select from")
        offset = _go_mod(time.time_ns(), max_start)
        base = int(offset / self.ops_per_iter) * self.ops_per_iter
        entries = self.psv_generator(base, False)

        start = time.perf_counter()
        self._run_concurrently(self._select_one, entries)
        elapsed = time.perf_counter() - start
        return _rate(self.ops_per_iter, elapsed)

    def select_many(self) -> int:
        """Scan a random partition up to one round of rows; return rows/sec."""
        partition = _partition_name(random.randrange(self.partitions))
        start = time.perf_counter()
        scanned = sum(
            1
            for _ in self.session.execute(
                SELECT_MANY_QUERY, (partition, self.ops_per_iter)
            )
        )
        elapsed = time.perf_counter() - start
        return _rate(scanned, elapsed)

    def dump_partition_sizes(self) -> int:
        """Print the row count of every partition and return the total."""
        total = 0
        for index in range(self.partitions):
            partition = _partition_name(index)
            row = _first_row(self.session.execute(PARTITION_COUNT_QUERY, (partition,)))
            if row is None:
                raise StressError(f"no count returned for partition {partition}")
            count = int(row[0])
            print(f"Partition {partition} size: {count}")
            total += count
        print(f"Total kvs: {total}")
        return total

    def psv_generator(self, starting_rows: int, include_value: bool) -> Iterator[PSV]:
        """Yield one round of deterministic entries derived from ``starting_rows``."""
        partition_generator = NumberSequence()
        partition_generator.seed(to_int64(starting_rows))
        sort_generator = LetterSequence(0)
        sort_generator.seed(to_uint64(starting_rows))
        value_generator = ByteSequence(0)
        value_generator.seed(to_uint64(starting_rows))

        for _ in range(self.ops_per_iter):
            index = _go_mod(partition_generator.next(), self.partitions)
            psv = PSV(
                p=_partition_name(index),
                s=sort_generator.letters(SORT_KEY_LEN),
            )
            if include_value:
                value = bytearray(self.value_len)
                value_generator.fill(value)
                psv.v = bytes(value)
            yield psv

    def step(self, bw_log: TextIO, out: Optional[TextIO] = None) -> tuple[int, int, int]:
        """Run one insert round (plus selects every so often) and log the rates."""
        out = sys.stdout if out is None else out
        irate = self.insert()
        srate = 0
        srate2 = 0
        if self.rows % SELECT_INTERVAL == 0:
            srate = self.select_one()
            srate2 = self.select_many()

        if srate > 0:
            bw_log.write(f"{self.rows}, {irate}, {srate}, {srate2}\n")
            out.write(
                f" - {self.rows} rows, insert {irate} rows/sec, "
                f"select {srate} rows/sec, many {srate2} rows/sec\n"
            )
        else:
            bw_log.write(f"{self.rows}, {irate}, NA, NA\n")
            out.write(f" - {self.rows} rows, insert {irate} rows/sec\n")
        return irate, srate, srate2