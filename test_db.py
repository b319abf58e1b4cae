import threading
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta

import pytest

import db
from dump_records import dump
from models import MaintenanceRecord, MaintenanceSubmission, utcnow
from rule_engine import RuleSettings
from service import submit_maintenance
from vocabulary import SPANISH

EQUIPMENT = uuid.UUID("6f1c2a9e-3b4d-4c5e-8f7a-9b0c1d2e3f40")
OTHER_EQUIPMENT = uuid.UUID("0b7e4c1d-92aa-4f03-b6d5-7c8e9f102a3b")
USER = uuid.UUID("c4a8d2e6-1f3b-4a5c-9d7e-2b4f6a8c0e13")
T0 = datetime(2026, 3, 1, 8, 30, 15, 123456)


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "maintenance.db")
    db.init_db(path)
    return path


def make_record(created_at, equipment_id=EQUIPMENT, maintenance_type="preventivo", maintenance_date=None):
    return MaintenanceRecord(
        equipment_id=equipment_id,
        equipment_name="Torno CNC",
        maintenance_date=maintenance_date or created_at,
        maintenance_type=maintenance_type,
        description="Lubricación de guías y cambio de filtros",
        user_id=USER,
        user_name="Marco Ibarra",
        created_at=created_at,
    )


def test_init_db_is_idempotent(db_path):
    db.init_db(db_path)
    assert db.fetch_maintenance(db_path) == []


def test_save_and_fetch_by_id_round_trip(db_path):
    record = make_record(T0)
    assert db.save_maintenance(record, db_path) is record
    assert db.fetch_maintenance_by_id(record.id, db_path) == record


def test_fetch_by_unknown_id(db_path):
    assert db.fetch_maintenance_by_id(uuid.uuid4(), db_path) is None


def test_list_is_newest_created_first(db_path):
    older = make_record(T0)
    newer = make_record(T0 + timedelta(hours=1), maintenance_date=T0 - timedelta(days=3))
    db.save_maintenance(newer, db_path)
    db.save_maintenance(older, db_path)
    assert [r.id for r in db.fetch_maintenance(db_path)] == [newer.id, older.id]


def test_save_is_idempotent_and_never_overwrites(db_path):
    record = make_record(T0)
    db.save_maintenance(record, db_path)
    db.save_maintenance(record, db_path)
    changed = record.model_copy(update={"description": "Otro texto distinto"})
    db.save_maintenance(changed, db_path)

    stored = db.fetch_maintenance(db_path)
    assert len(stored) == 1
    assert stored[0].description == record.description


def test_fetch_filters(db_path):
    a = make_record(T0)
    b = make_record(T0 + timedelta(minutes=1), equipment_id=OTHER_EQUIPMENT, maintenance_type="correctivo")
    c = make_record(T0 + timedelta(days=1))
    for r in (a, b, c):
        db.save_maintenance(r, db_path)

    assert [r.id for r in db.fetch_maintenance(db_path, equipment_id=EQUIPMENT)] == [c.id, a.id]
    assert [r.id for r in db.fetch_maintenance(db_path, maintenance_type=" Correctivo")] == [b.id]
    assert [r.id for r in db.fetch_maintenance(db_path, on_date=T0.date())] == [b.id, a.id]


def test_records_are_immutable():
    record = make_record(T0)
    with pytest.raises(Exception):
        record.description = "cambiado"


def test_equipment_lock_serialises_holders_and_cleans_up():
    order = []

    def second():
        with db.equipment_lock(EQUIPMENT):
            order.append("second")

    with db.equipment_lock(EQUIPMENT):
        entry = db._equipment_locks[EQUIPMENT]
        waiter = threading.Thread(target=second)
        waiter.start()
        deadline = time.monotonic() + 5
        while entry.holders < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert entry.holders == 2
        order.append("first")
    waiter.join(5)

    assert order == ["first", "second"]
    assert EQUIPMENT not in db._equipment_locks


def test_lock_registry_is_empty_after_submissions(db_path):
    settings = RuleSettings(vocabulary=SPANISH)
    for _ in range(50):
        submission = _submission(None).model_copy(update={"equipment_id": uuid.uuid4()})
        verdict, record = submit_maintenance(submission, db_path, settings=settings)
        assert record is None
    assert db._equipment_locks == {}


def _submission(maintenance_date):
    return MaintenanceSubmission(
        equipment_id=EQUIPMENT,
        equipment_name="Torno CNC",
        maintenance_date=maintenance_date,
        maintenance_type="Preventivo ",
        description="Cambio de aceite y filtros programado",
        user_id=USER,
        user_name="Marco Ibarra",
    )


def test_submit_persists_normalised_record(db_path):
    now = utcnow()
    verdict, record = submit_maintenance(_submission(now), db_path, settings=RuleSettings(vocabulary=SPANISH))
    assert verdict.is_valid
    assert verdict.warnings == []
    assert record.maintenance_type == "preventivo"
    assert db.fetch_maintenance_by_id(record.id, db_path) == record


def test_submit_rejects_without_persisting(db_path):
    verdict, record = submit_maintenance(_submission(None), db_path, settings=RuleSettings(vocabulary=SPANISH))
    assert not verdict.is_valid
    assert record is None
    assert db.fetch_maintenance(db_path) == []


def test_concurrent_same_day_submissions_accept_exactly_one(db_path):
    now = utcnow()
    settings = RuleSettings(vocabulary=SPANISH)
    noon_yesterday = (now - timedelta(days=1)).replace(hour=12, minute=0, second=0, microsecond=0)
    submissions = [_submission(noon_yesterday + timedelta(minutes=i)) for i in range(8)]

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(lambda s: submit_maintenance(s, db_path, now=now, settings=settings), submissions))

    accepted = [r for r in results if r.record is not None]
    rejected = [r for r in results if r.record is None]
    assert len(accepted) == 1
    assert len(rejected) == 7
    winner = accepted[0].record
    for result in rejected:
        assert any(str(winner.id) in e for e in result.verdict.errors)
    assert len(db.fetch_maintenance(db_path)) == 1
    assert db._equipment_locks == {}


def test_dump_prints_records(db_path, capsys):
    record = make_record(T0)
    db.save_maintenance(record, db_path)
    dump(EQUIPMENT, db_path=db_path)
    out = capsys.readouterr().out
    assert str(record.id) in out


def test_dump_without_records(db_path, capsys):
    dump(OTHER_EQUIPMENT, db_path=db_path)
    assert "No maintenance records for" in capsys.readouterr().out
