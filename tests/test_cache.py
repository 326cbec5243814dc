import asyncio

import pytest

from kiosk.cache import (
    AddBuilding,
    ClearError,
    DeleteBuilding,
    KioskCache,
    KioskState,
    SetData,
    SetError,
    SetLoading,
    UpdateBuilding,
    kiosk_reducer,
)
from kiosk.fetchers import SnapshotUnavailable

from .snapshots import make_snapshot, returning, room


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


def failing(message='Failed to fetch data'):
    async def fetch():
        raise SnapshotUnavailable(message)
    return fetch


async def loaded_cache(clock=None):
    cache = KioskCache(returning(make_snapshot()), clock=clock or FakeClock())
    await cache.refresh()
    return cache


def test_initial_state():
    state = KioskCache(returning({})).state
    assert state == KioskState(buildings=(), connections=(), is_loading=False, error=None, last_updated=0)


def test_reducer_does_not_modify_previous_state():
    before = KioskState()
    after = kiosk_reducer(before, SetData(make_snapshot()['buildings'], []), now=5)

    assert before.buildings == ()
    assert len(after.buildings) == 2
    assert after.last_updated == 5


def test_reducer_error_keeps_data():
    loaded = kiosk_reducer(KioskState(is_loading=True), SetData([{'id': 'b1', 'floors': []}], []), now=5)
    failed = kiosk_reducer(kiosk_reducer(loaded, SetLoading(True), now=6), SetError('boom'), now=7)

    assert failed.buildings == loaded.buildings
    assert failed.error == 'boom'
    assert failed.is_loading is False
    assert failed.last_updated == 5
    assert kiosk_reducer(failed, ClearError(), now=8).error is None


def test_reducer_building_projections():
    state = KioskState(buildings=({'id': 'b1', 'name': 'A'}, {'id': 'b2', 'name': 'B'}))

    added = kiosk_reducer(state, AddBuilding({'id': 'b3', 'name': 'C'}), now=1)
    renamed = kiosk_reducer(added, UpdateBuilding({'id': 'b2', 'name': 'B2'}), now=2)
    removed = kiosk_reducer(renamed, DeleteBuilding('b1'), now=3)

    assert [b['name'] for b in added.buildings] == ['A', 'B', 'C']
    assert [b['name'] for b in renamed.buildings] == ['A', 'B2', 'C']
    assert [b['name'] for b in removed.buildings] == ['B2', 'C']
    assert removed.last_updated == 3


def test_reducer_ignores_unknown_actions():
    state = KioskState()
    assert kiosk_reducer(state, object(), now=1) is state


@pytest.mark.asyncio
async def test_refresh_replaces_snapshot():
    cache = await loaded_cache(FakeClock(1234.5))

    state = cache.state
    assert [b['name'] for b in state.buildings] == ['동행관', '소통관']
    assert len(state.connections) == 1
    assert state.is_loading is False
    assert state.error is None
    assert state.last_updated == 1234500


@pytest.mark.asyncio
async def test_refresh_is_loading_while_in_flight():
    release = asyncio.Event()
    observed = []

    async def fetch():
        await release.wait()
        return make_snapshot()

    cache = KioskCache(fetch)
    task = asyncio.create_task(cache.refresh())
    await asyncio.sleep(0)
    observed.append(cache.state.is_loading)
    release.set()
    await task

    assert observed == [True]
    assert cache.state.is_loading is False


@pytest.mark.asyncio
async def test_failed_refresh_keeps_snapshot():
    clock = FakeClock(10.0)
    cache = await loaded_cache(clock)
    buildings = cache.state.buildings
    clock.now = 20.0
    cache._fetch = failing()

    assert await cache.refresh() is False

    state = cache.state
    assert state.buildings == buildings
    assert state.error == 'Failed to fetch data'
    assert state.is_loading is False
    assert state.last_updated == 10000


@pytest.mark.asyncio
async def test_successful_refresh_clears_error():
    cache = KioskCache(failing())
    await cache.refresh()
    assert cache.state.error

    cache._fetch = returning(make_snapshot())
    assert await cache.refresh() is True
    assert cache.state.error is None


@pytest.mark.asyncio
async def test_empty_snapshot_is_not_an_error():
    cache = KioskCache(returning({'buildings': [], 'connections': [], 'timestamp': 1}))
    await cache.refresh()
    assert cache.state.buildings == ()
    assert cache.state.error is None
    assert cache.get_building('b1') is None


@pytest.mark.asyncio
async def test_last_response_to_resolve_wins():
    first_gate, second_gate = asyncio.Event(), asyncio.Event()
    older = {'buildings': [{'id': 'old', 'floors': []}], 'connections': []}
    newer = {'buildings': [{'id': 'new', 'floors': []}], 'connections': []}
    responses = iter([(first_gate, older), (second_gate, newer)])

    async def fetch():
        gate, payload = next(responses)
        await gate.wait()
        return payload

    cache = KioskCache(fetch)
    first = asyncio.create_task(cache.refresh())
    second = asyncio.create_task(cache.refresh())
    await asyncio.sleep(0)

    second_gate.set()
    await second
    assert cache.get_building('new') is not None

    first_gate.set()
    await first
    assert [b['id'] for b in cache.state.buildings] == ['old']


@pytest.mark.asyncio
async def test_lookups():
    cache = await loaded_cache()

    assert cache.get_building('b2')['name'] == '소통관'
    assert cache.get_floor('f2')['name'] == '2층'
    assert cache.get_floor('f2')['rooms'][0]['name'] == '교육실 A'
    assert cache.get_room('r4')['floor_id'] == 'f3'
    assert cache.find_building_of_floor('f3')['id'] == 'b2'
    for missing in (cache.get_building('x'), cache.get_floor('x'), cache.get_room('x'),
                    cache.find_building_of_floor('x')):
        assert missing is None


@pytest.mark.asyncio
async def test_lookups_follow_projections():
    clock = FakeClock(1.0)
    cache = await loaded_cache(clock)
    new_building = {'id': 'b9', 'name': '나눔관', 'floors': [
        {'id': 'f9', 'building_id': 'b9', 'floor_number': 1, 'name': '1층', 'rooms': [room('r9', 'f9', '식당')]},
    ]}

    clock.now = 2.0
    cache.add_building(new_building)
    assert cache.get_room('r9')['name'] == '식당'
    assert cache.state.last_updated == 2000

    clock.now = 3.0
    cache.replace_building(dict(new_building, floors=[]))
    assert cache.get_building('b9')['floors'] == []
    assert cache.get_room('r9') is None
    assert cache.state.last_updated == 3000


@pytest.mark.asyncio
async def test_remove_building_leaves_siblings():
    cache = await loaded_cache()

    cache.remove_building('b1')

    assert cache.get_building('b1') is None
    assert cache.get_floor('f1') is None
    assert cache.get_room('r1') is None
    assert cache.get_building('b2')['name'] == '소통관'
    assert cache.get_room('r4') is not None


@pytest.mark.asyncio
async def test_search_rooms():
    cache = await loaded_cache()

    names = [room['name'] for _, _, room in cache.search_rooms('동행')]
    assert names == ['카페동행', '갤러리동행']
    building, floor, found = cache.search_rooms('교육실a')[0]
    assert (building['id'], floor['id'], found['id']) == ('b1', 'f2', 'r3')
    assert cache.search_rooms('   ') == []


@pytest.mark.asyncio
async def test_connections_of_floor():
    cache = await loaded_cache()
    assert [c['id'] for c in cache.connections_of_floor('f3')] == ['c1']
    assert cache.connections_of_floor('f1') == []


@pytest.mark.asyncio
async def test_polling_refreshes_until_stopped():
    calls = []

    async def fetch():
        calls.append(len(calls))
        return make_snapshot()

    cache = KioskCache(fetch, interval=0.01)
    cache.start()
    await asyncio.sleep(0)
    await asyncio.sleep(0)
    assert calls, 'refresh should run as soon as the cache starts'
    await asyncio.sleep(0.1)
    assert len(calls) >= 2
    assert cache.running

    await cache.stop()
    assert not cache.running
    count = len(calls)
    await asyncio.sleep(0.05)
    assert len(calls) == count


@pytest.mark.asyncio
async def test_polling_survives_failures():
    calls = []

    async def fetch():
        calls.append(1)
        raise SnapshotUnavailable('Failed to fetch data')

    async with KioskCache(fetch, interval=0.01) as cache:
        await asyncio.sleep(0.05)
        assert cache.running
        assert cache.state.error == 'Failed to fetch data'
    assert not cache.running
    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_stop_without_start():
    cache = KioskCache(returning(make_snapshot()))
    await cache.stop()
    assert not cache.running


@pytest.mark.asyncio
async def test_polling_survives_unexpected_errors():
    calls = []

    async def fetch():
        calls.append(1)
        raise RuntimeError('boom')

    cache = KioskCache(fetch, interval=0.01)
    cache.start()
    await asyncio.sleep(0.05)

    assert cache.running
    assert cache.state.is_loading is False
    assert cache.state.error == 'Unknown error'
    assert len(calls) >= 2
    await cache.stop()
    assert not cache.running


@pytest.mark.asyncio
async def test_malformed_snapshot_keeps_previous_data():
    cache = await loaded_cache()
    buildings = cache.state.buildings
    cache._fetch = returning({'buildings': None, 'connections': []})

    assert await cache.refresh() is False

    assert cache.state.buildings == buildings
    assert cache.state.error == 'Unknown error'
    assert cache.state.is_loading is False
