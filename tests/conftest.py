"""Pytest configuration and fixtures for cbdb-network-lib tests.

Fixture data (a small Song-dynasty neighbourhood of CBDB):

    kinship:      1762 <-> 526 (recorded both ways), 526 -> 7777
    association:  1762 -> 999, 999 -> 1384, 1384 -> 3767
    office:       1762 and 3767 both posted to office 100
    alt names:    1762 "Jiefu", 999 "Dongpo"
    texts:        1762 x2, 999 x1, 8003 x1
    search-only:  8001 / 8002 / 8003 "Zhang *", 8100 "Jiefu Li"
"""

from __future__ import annotations

import pytest

from cbdb_network import (
    InMemoryRelationStore,
    KuzuRelationStore,
    NetworkConfig,
    SQLiteRelationStore,
)

PERSONS = [
    (1762, "Wang Anshi", "王安石", 1021, 1086, 1021, 15),
    (526, "Wang Yi", "王益", 994, 1039, 994, 15),
    (7777, "Wang Pang", "王雱", 1044, 1076, 1044, 15),
    (999, "Su Shi", "蘇軾", 1037, 1101, 1037, 15),
    (1384, "Ouyang Xiu", "歐陽修", 1007, 1072, 1007, 15),
    (3767, "Sima Guang", "司馬光", 1019, 1086, 1019, 15),
    (8001, "Zhang A", "", None, None, None, None),
    (8002, "Zhang B", "", None, None, None, None),
    (8003, "Zhang C", "", None, None, None, None),
    (8100, "Jiefu Li", "", None, None, None, None),
]


def build_cbdb_fixture(store):
    """Populate any store exposing the add_* builders with the fixture data."""
    for pid, name, name_chn, birth, death, index_year, dynasty in PERSONS:
        store.add_person(
            pid,
            name=name,
            name_chn=name_chn,
            birth_year=birth,
            death_year=death,
            index_year=index_year,
            dynasty_code=dynasty,
        )

    store.add_kinship(1762, 526, code=75, label="F")
    store.add_kinship(526, 1762, code=180, label="S")
    store.add_kinship(526, 7777, code=181, label="SS")

    store.add_association(1762, 999, code=9, label="Friend")
    store.add_association(999, 1384, code=9, label="Friend")
    store.add_association(1384, 3767, code=22, label="Student of")

    store.add_office(100, "Hanlin Academician")
    store.add_posting(1762, 100)
    store.add_posting(3767, 100)

    store.add_alt_name(1762, alt_name="Jiefu", alt_name_chn="介甫")
    store.add_alt_name(999, alt_name="Dongpo", alt_name_chn="東坡")

    store.add_text(1762, 1)
    store.add_text(1762, 2)
    store.add_text(999, 3)
    store.add_text(8003, 4)
    return store


@pytest.fixture
def config():
    return NetworkConfig(max_workers=2, task_timeout=10.0)


@pytest.fixture
def memory_store():
    """In-memory store holding the fixture data."""
    store = build_cbdb_fixture(InMemoryRelationStore(store_id="fixture"))
    yield store
    store.close()


@pytest.fixture
def sqlite_store(tmp_path):
    """SQLite store over a fresh CBDB-shaped file."""
    store = build_cbdb_fixture(SQLiteRelationStore(tmp_path / "cbdb.sqlite3", store_id="sqlite-fixture"))
    yield store
    store.close()


@pytest.fixture
def kuzu_store(tmp_path):
    """Kuzu store over a fresh database directory."""
    store = build_cbdb_fixture(KuzuRelationStore(tmp_path / "cbdb_kuzu", store_id="kuzu-fixture"))
    yield store
    store.close()


@pytest.fixture(params=["memory", "sqlite", "kuzu"])
def any_store(request):
    """Each concrete store in turn, all holding the fixture data."""
    return request.getfixturevalue(f"{request.param}_store")
