import io
import threading

import pytest

from dbstress.byte_sequence import ByteSequence
from dbstress.letter_sequence import LetterSequence
from dbstress.stress import (
    INSERT_QUERY,
    PSV,
    SCHEMA,
    SELECT_MANY_QUERY,
    UPDATE_ROWS_QUERY,
    StressDB,
    StressError,
)


class FakeSession:
    def __init__(self, tables=2, stored_rows=(0,), fail_on=None, scan_rows=5, found=True):
        self.tables = tables
        self.stored_rows = stored_rows
        self.fail_on = fail_on
        self.scan_rows = scan_rows
        self.found = found
        self.calls = []
        self._lock = threading.Lock()

    def execute(self, statement, parameters=()):
        with self._lock:
            self.calls.append((statement, tuple(parameters)))
        if self.fail_on and statement.startswith(self.fail_on):
            raise RuntimeError("boom")
        if statement.startswith("SELECT COUNT(table_name)"):
            return [(self.tables,)]
        if statement.startswith("SELECT rows FROM rows"):
            return [self.stored_rows] if self.stored_rows is not None else []
        if statement.startswith("SELECT v FROM kv"):
            return [(b"value",)] if self.found else []
        if statement.startswith("SELECT s, v FROM kv"):
            return [("s", b"v")] * self.scan_rows
        if statement.startswith("SELECT COUNT(*) FROM kv"):
            return [(3,)]
        return []

    def statements(self, prefix):
        return [call for call in self.calls if call[0].startswith(prefix)]


def make_db(session, **kwargs):
    params = dict(concurrency=4, partitions=10, value_len=32, ops_per_iter=20, rows=0)
    params.update(kwargs)
    return StressDB(session, **params)


def test_psv_generator_is_deterministic():
    db = make_db(FakeSession())
    first = list(db.psv_generator(40, True))
    second = list(db.psv_generator(40, True))
    assert first == second
    assert len(first) == db.ops_per_iter


def test_psv_generator_keys_shape():
    db = make_db(FakeSession())
    for psv in db.psv_generator(123, False):
        assert psv.p.startswith("part-")
        assert 0 <= int(psv.p[len("part-"):]) < db.partitions
        assert len(psv.s) == 64
        assert psv.s.isalpha() and psv.s.islower()
        assert psv.v is None


def test_psv_generator_keys_match_with_and_without_values():
    db = make_db(FakeSession())
    with_values = list(db.psv_generator(7, True))
    without_values = list(db.psv_generator(7, False))
    assert [(p.p, p.s) for p in with_values] == [(p.p, p.s) for p in without_values]


def test_psv_generator_uses_seeded_sequences():
    db = make_db(FakeSession(), ops_per_iter=3)
    letters = LetterSequence(0)
    letters.seed(99)
    values = ByteSequence(0)
    values.seed(99)
    for psv in db.psv_generator(99, True):
        assert psv.s == letters.letters(64)
        expected = bytearray(db.value_len)
        values.fill(expected)
        assert psv.v == bytes(expected)


def test_insert_executes_every_entry_and_updates_count():
    session = FakeSession()
    db = make_db(session, rows=100)
    rate = db.insert()
    assert rate >= 0
    assert db.rows == 120
    inserts = session.statements(INSERT_QUERY)
    assert len(inserts) == 20
    expected = {(p.p, p.s, p.v) for p in db.psv_generator(100, True)}
    assert {params for _, params in inserts} == expected
    assert session.statements(UPDATE_ROWS_QUERY) == [(UPDATE_ROWS_QUERY, (120, 0))]


def test_insert_failure_raises():
    db = make_db(FakeSession(fail_on="INSERT INTO kv"))
    with pytest.raises(StressError, match="error inserting entry"):
        db.insert()


def test_insert_update_failure_raises():
    db = make_db(FakeSession(fail_on="UPDATE rows"))
    with pytest.raises(StressError, match="error updating row count"):
        db.insert()


def test_pre_start_loads_rows_without_schema():
    session = FakeSession(tables=2, stored_rows=(5000,))
    db = make_db(session)
    db.pre_start()
    assert db.rows == 5000
    assert not session.statements("CREATE TABLE")


def test_pre_start_loads_schema_when_tables_missing(capsys):
    session = FakeSession(tables=0, stored_rows=(0,))
    db = make_db(session)
    db.pre_start()
    executed = [statement for statement, _ in session.calls]
    for statement in SCHEMA:
        assert statement.strip() in executed
    assert "Loading schema" in capsys.readouterr().out


def test_pre_start_missing_row_count():
    db = make_db(FakeSession(stored_rows=None))
    with pytest.raises(StressError, match="no entry for row count"):
        db.pre_start()


def test_pre_start_table_count_error():
    db = make_db(FakeSession(fail_on="SELECT COUNT(table_name)"))
    with pytest.raises(StressError, match="failed get table count"):
        db.pre_start()


def test_load_schema_error():
    db = make_db(FakeSession(fail_on="CREATE TABLE"))
    with pytest.raises(StressError, match="error loading schema"):
        db.load_schema()


def test_select_one_queries_existing_keys():
    session = FakeSession()
    db = make_db(session, rows=200)
    assert db.select_one() >= 0
    selects = session.statements("SELECT v FROM kv")
    assert len(selects) == db.ops_per_iter


def test_select_one_not_found():
    db = make_db(FakeSession(found=False), rows=200)
    with pytest.raises(StressError, match="select error"):
        db.select_one()


def test_select_one_without_enough_rows():
    db = make_db(FakeSession(), rows=20)
    with pytest.raises(StressError):
        db.select_one()


def test_select_many_scans_partition():
    session = FakeSession(scan_rows=7)
    db = make_db(session)
    assert db.select_many() >= 0
    (call,) = session.statements(SELECT_MANY_QUERY)
    partition, limit = call[1]
    assert partition.startswith("part-")
    assert limit == db.ops_per_iter


def test_dump_partition_sizes(capsys):
    db = make_db(FakeSession(), partitions=4)
    assert db.dump_partition_sizes() == 12
    out = capsys.readouterr().out
    assert "Partition part-0 size: 3" in out
    assert "Total kvs: 12" in out


def test_step_without_selects():
    session = FakeSession()
    db = make_db(session, rows=0)
    log, out = io.StringIO(), io.StringIO()
    irate, srate, srate2 = db.step(log, out)
    assert (srate, srate2) == (0, 0)
    assert log.getvalue() == f"20, {irate}, NA, NA\n"
    assert out.getvalue() == f" - 20 rows, insert {irate} rows/sec\n"


def test_step_with_selects():
    session = FakeSession()
    db = make_db(session, rows=9980)
    log, out = io.StringIO(), io.StringIO()
    irate, srate, srate2 = db.step(log, out)
    assert db.rows == 10000
    assert srate > 0
    assert log.getvalue() == f"10000, {irate}, {srate}, {srate2}\n"
    assert "select" in out.getvalue()


def test_psv_defaults():
    psv = PSV(p="part-1", s="abc")
    assert psv.v is None
    assert psv == PSV("part-1", "abc", None)