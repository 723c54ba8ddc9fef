# dbstress

A stress workload for a key/value table in a wide-column database. The
package also holds the small, deterministic pseudo-random generators that
produce the workload's keys and values.

The data is reproducible. A generator seeded with the same value always
yields the same output. That is how the select phase finds exactly the rows
that an earlier insert phase wrote.

The package depends only on the standard library.

## Generators

All three generators are linear congruential generators, chosen for speed.
None of them is cryptographically strong.

### `dbstress.number_sequence.NumberSequence`

This generator produces non-negative 64-bit integers.

```python
from dbstress.number_sequence import NumberSequence

numbers = NumberSequence()
numbers.seed(42)
first = numbers.next()
```

### `dbstress.byte_sequence.ByteSequence`

This generator produces pseudo-random bytes. It can act as a finite,
file-like stream of `size` bytes:

- `read(size=-1)` returns `bytes`, and returns `b""` at the end of the stream.
- `readinto(buf)` fills a writable buffer and returns the number of bytes written.
- `seek(offset, whence)` moves the position.
- `write(buf)` discards the data and returns `len(buf)`.
- `close()` drops the remaining size, so later reads return nothing.

The class is also a context manager that closes itself on exit.

`fill(buf)` fills any writable buffer completely, whatever the stream size.

```python
import io
from dbstress.byte_sequence import ByteSequence

stream = ByteSequence(4096)
chunk = stream.read(1024)       # 1024 bytes
stream.seek(0, io.SEEK_SET)     # moves the position only; the generator state is unchanged

buf = bytearray(200_000)
gen = ByteSequence(0)
gen.seed(7)
gen.pattern_fill(buf, 50)       # about half of the full 64 KiB blocks become runs of b"A"
```

Seeking does not rewind the generator. Reading, seeking back to 0 and
reading again gives different data. Seeking to a negative offset or past the
end raises `ValueError`, and so does an unknown `whence` value.

`pattern_fill(buf, compressibility)` takes a `compressibility` from 0 to
100:

- At 0 the whole buffer is pseudo-random.
- Otherwise the buffer is split into 64 KiB blocks. `compressibility`
  percent of the full blocks are filled with the letter `A`, and the rest
  with pseudo-random data.
- Any trailing partial block is filled one way or the other.

### `dbstress.letter_sequence.LetterSequence`

This generator has the same stream interface as `ByteSequence`, but every
byte it produces is a lowercase ASCII letter. Its `write` discards the data
and returns 0. `letters(length)` returns a string.

```python
from dbstress.letter_sequence import LetterSequence

letters = LetterSequence(0)
letters.seed(1000)
key = letters.letters(64)       # a 64-character lowercase string
```

## The stress workload

`dbstress.stress.StressDB` drives the workload through a session object that
you supply.

### The session object

The session needs a single method:

```python
def execute(self, statement: str, parameters=()) -> Iterable[Sequence]: ...
```

The method runs a parameterised statement, with `?` placeholders, and
returns its result rows.

### Constructor settings

`StressDB` takes the following settings. The defaults are shown in brackets.

- `concurrency`: the number of worker threads (100)
- `partitions`: the number of partitions (100)
- `value_len`: the size of each value (1024)
- `ops_per_iter`: the number of rows per iteration (1000)
- `rows`: the starting row count (0)

### Methods

| Method | What it does |
| --- | --- |
| `pre_start()` | Counts the tables in the `dbstress` keyspace and calls `load_schema()` unless there are exactly two. It then loads the stored row count from the `rows` table. |
| `load_schema()` | Prints `Loading schema`. It then creates the `kv` table (`p`, `s`, `v`) and the `rows` table, and inserts a row count of 0. |
| `insert()` | Writes one iteration of rows concurrently and adds `ops_per_iter` to `rows`. It stores the new count and returns the number of rows per second. |
| `select_one()` | Reads back an earlier batch one row at a time, starting at a time-derived batch below `rows`. Returns the number of rows per second. |
| `select_many()` | Scans a random partition, reading up to `ops_per_iter` rows. Returns the number of rows per second. |
| `psv_generator(starting_rows, include_value)` | Yields the `PSV` entries for one batch: partition `part-N`, a 64-letter sort key and, optionally, the value bytes. The entries depend only on `starting_rows`. |
| `dump_partition_sizes()` | Prints the row count of each partition and the total, then returns the total. |
| `step(bw_log, out=None)` | Runs one insert iteration. When `rows` is a multiple of 10,000 it also runs both select phases. It writes a CSV line (`rows, insert, select, many`, with `NA` when no select ran) to `bw_log` and a progress line to `out` (standard output by default). It returns the three rates. |

### Errors

A failed statement, a missing row count, or a selected row that is not found
raises `StressError`.

`select_one()` also raises `StressError` when `rows` equals `ops_per_iter`,
because there is then no earlier batch to choose from.

```python
from dbstress.stress import StressDB

db = StressDB(session)          # any object with the execute() method above
db.pre_start()
with open("log.csv", "a") as bw_log:
    while True:
        db.step(bw_log)
```

## What the package does not do

The package includes no database driver and no command-line program. It
does not connect to a cluster, create the keyspace, or run the loop until
interrupted.

To run the workload, open a session to your database and wrap it in an
object with the `execute` method shown above. Then call `pre_start()` once,
and call `step()` as often as you like.