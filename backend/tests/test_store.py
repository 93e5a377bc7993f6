import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import text

from conftest import T0
from db import make_engine
from errors import StoreUnavailable
from models import SleepSession
from session_manager import SessionManager
from store import InMemorySessionStore, SQLModelSessionStore


def test_saved_sessions_load_back_as_aware_utc(sql_store):
    local_start = datetime(2024, 3, 10, 15, 0, tzinfo=ZoneInfo("Europe/Copenhagen"))
    sql_store.save(SleepSession(start_date=local_start, end_date=local_start + timedelta(hours=1)))

    [loaded] = sql_store.load_all()

    assert loaded.start_date.tzinfo is not None
    assert loaded.start_date == T0
    assert loaded.end_date == T0 + timedelta(hours=1)
    assert loaded.created_manually is False


def test_save_updates_an_existing_record(sql_store):
    saved = sql_store.save(SleepSession(start_date=T0))
    sql_store.save(saved.copy_with(end_date=T0 + timedelta(minutes=25)))

    [loaded] = sql_store.load_all()

    assert loaded.id == saved.id
    assert loaded.end_date == T0 + timedelta(minutes=25)


def test_load_all_is_newest_first(sql_store):
    for hours in (1, 3, 2):
        sql_store.save(SleepSession(start_date=T0 + timedelta(hours=hours), created_manually=True))

    starts = [s.start_date for s in sql_store.load_all()]

    assert starts == sorted(starts, reverse=True)


def test_missing_table_is_reported_as_store_unavailable():
    store = SQLModelSessionStore(make_engine("sqlite://"))

    with pytest.raises(StoreUnavailable):
        store.load_all()
    with pytest.raises(StoreUnavailable):
        store.save(SleepSession(start_date=T0))


def test_listeners_hear_about_committed_saves(sql_store):
    heard = []
    sql_store.add_listener(heard.append)

    saved = sql_store.save(SleepSession(start_date=T0))

    assert [s.id for s in heard] == [saved.id]


def test_manager_round_trip_through_sqlite(sql_store):
    manager = SessionManager(sql_store)
    manager.refresh()

    manager.start_session(T0)
    manager.stop_session(T0 + timedelta(minutes=45))
    manager.add_session(T0 - timedelta(hours=2), T0 - timedelta(hours=1), now=T0)

    fresh = SessionManager(sql_store, follow_store_changes=False)
    fresh.refresh()
    assert len(fresh.sessions) == 2
    assert fresh.active_session() is None
    assert fresh.total_sleep_duration(T0.date(), now=T0 + timedelta(hours=1)) == 2700 + 3600


def test_in_memory_store_hands_out_copies():
    store = InMemorySessionStore()
    saved = store.save(SleepSession(start_date=T0))
    saved.end_date = T0 + timedelta(hours=1)

    [loaded] = store.load_all()

    assert loaded.end_date is None


def test_in_memory_store_normalizes_naive_times():
    store = InMemorySessionStore([SleepSession(start_date=datetime(2024, 3, 10, 14, 0))])

    [loaded] = store.load_all()

    assert loaded.start_date == datetime(2024, 3, 10, 14, 0, tzinfo=timezone.utc)


def test_undecodable_row_empties_the_cache_without_raising(sql_engine, sql_store, caplog):
    sql_store.save(SleepSession(start_date=T0))
    with sql_engine.begin() as conn:
        conn.execute(
            text(
                "INSERT INTO sleep_sessions (id, start_date, end_date, created_manually) "
                "VALUES ('x', 'garbage', NULL, 0)"
            )
        )
    manager = SessionManager(sql_store)

    with pytest.raises(StoreUnavailable):
        sql_store.load_all()
    with caplog.at_level(logging.ERROR):
        manager.refresh()

    assert manager.sessions == ()
    assert "Failed to fetch sleep sessions" in caplog.text
