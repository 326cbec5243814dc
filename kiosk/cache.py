"""
Kiosk data cache.

Holds one snapshot of the building -> floor -> room tree plus the active
connections for the lifetime of a kiosk session and answers lookups from it
without going back to the server.

State only changes through ``kiosk_reducer``: completions of ``refresh()``
and the projection actions the admin side sends after it has already
committed a change on the server. Refreshes are not cancelled when a new one
starts; whichever response resolves last replaces the whole snapshot.
"""
import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Optional

from navigation.utils import room_matches

from .fetchers import SnapshotUnavailable

logger = logging.getLogger(__name__)

REFRESH_INTERVAL_SECONDS = 5 * 60


@dataclass(frozen=True)
class KioskState:
    buildings: tuple = ()
    connections: tuple = ()
    is_loading: bool = False
    error: Optional[str] = None
    last_updated: int = 0  # unix millis


@dataclass(frozen=True)
class SetLoading:
    is_loading: bool


@dataclass(frozen=True)
class SetData:
    buildings: tuple
    connections: tuple


@dataclass(frozen=True)
class SetError:
    message: str


@dataclass(frozen=True)
class ClearError:
    pass


@dataclass(frozen=True)
class AddBuilding:
    building: dict


@dataclass(frozen=True)
class UpdateBuilding:
    building: dict


@dataclass(frozen=True)
class DeleteBuilding:
    building_id: str


def _same_id(a, b) -> bool:
    return str(a) == str(b)


def kiosk_reducer(state: KioskState, action, now: int) -> KioskState:
    """Return the state that follows ``action``; ``state`` itself is never modified."""
    if isinstance(action, SetLoading):
        return replace(state, is_loading=action.is_loading)
    if isinstance(action, SetData):
        return replace(state, buildings=tuple(action.buildings), connections=tuple(action.connections),
                       is_loading=False, error=None, last_updated=now)
    if isinstance(action, SetError):
        return replace(state, error=action.message, is_loading=False)
    if isinstance(action, ClearError):
        return replace(state, error=None)
    if isinstance(action, UpdateBuilding):
        buildings = tuple(action.building if _same_id(b['id'], action.building['id']) else b
                          for b in state.buildings)
        return replace(state, buildings=buildings, last_updated=now)
    if isinstance(action, DeleteBuilding):
        buildings = tuple(b for b in state.buildings if not _same_id(b['id'], action.building_id))
        return replace(state, buildings=buildings, last_updated=now)
    if isinstance(action, AddBuilding):
        return replace(state, buildings=state.buildings + (action.building,), last_updated=now)
    return state


class KioskCache:

    def __init__(self, fetch: Callable[[], Awaitable[dict]],
                 interval: float = REFRESH_INTERVAL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self._fetch = fetch
        self.interval = interval
        self._clock = clock
        self._state = KioskState()
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> KioskState:
        return self._state

    def dispatch(self, action) -> KioskState:
        self._state = kiosk_reducer(self._state, action, int(self._clock() * 1000))
        return self._state

    async def refresh(self) -> bool:
        """Replace the snapshot with a fresh one; on any failure keep it and record the error."""
        self.dispatch(SetLoading(True))
        try:
            payload = await self._fetch()
        except SnapshotUnavailable as e:
            logger.error(f"Kiosk refresh failed: {e}")
            self.dispatch(SetError(str(e) or 'Unknown error'))
            return False
        except Exception:
            logger.exception("Kiosk refresh failed")
            self.dispatch(SetError('Unknown error'))
            return False
        try:
            self.dispatch(SetData(payload.get('buildings', []), payload.get('connections', [])))
        except (TypeError, AttributeError):
            logger.exception("Kiosk snapshot is malformed")
            self.dispatch(SetError('Unknown error'))
            return False
        logger.debug(f"Kiosk snapshot refreshed: {len(self._state.buildings)} buildings")
        return True

    # Lookups

    def get_building(self, building_id) -> Optional[dict]:
        for building in self._state.buildings:
            if _same_id(building['id'], building_id):
                return building
        return None

    def get_floor(self, floor_id) -> Optional[dict]:
        for building in self._state.buildings:
            for floor in building['floors']:
                if _same_id(floor['id'], floor_id):
                    return floor
        return None

    def get_room(self, room_id) -> Optional[dict]:
        for building in self._state.buildings:
            for floor in building['floors']:
                for room in floor['rooms']:
                    if _same_id(room['id'], room_id):
                        return room
        return None

    def find_building_of_floor(self, floor_id) -> Optional[dict]:
        for building in self._state.buildings:
            if any(_same_id(floor['id'], floor_id) for floor in building['floors']):
                return building
        return None

    def search_rooms(self, query: str) -> list:
        """(building, floor, room) triples whose room name contains ``query``."""
        return [
            (building, floor, room)
            for building in self._state.buildings
            for floor in building['floors']
            for room in floor['rooms']
            if room_matches(room['name'], query)
        ]

    def connections_of_floor(self, floor_id) -> list:
        return [c for c in self._state.connections
                if _same_id(c['floor1_id'], floor_id) or _same_id(c['floor2_id'], floor_id)]

    # Projections of changes already committed on the server

    def add_building(self, building: dict) -> KioskState:
        return self.dispatch(AddBuilding(building))

    def replace_building(self, building: dict) -> KioskState:
        return self.dispatch(UpdateBuilding(building))

    def remove_building(self, building_id) -> KioskState:
        return self.dispatch(DeleteBuilding(building_id))

    # Scheduled refresh

    def start(self) -> None:
        """Refresh now and then every ``interval`` seconds until ``stop()``."""
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._poll())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _poll(self):
        while True:
            await self.refresh()
            await asyncio.sleep(self.interval)

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.stop()
