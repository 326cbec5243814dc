"""
Persistence gateways for the kiosk's buildings, floors, rooms and connections.

Two interchangeable backends implement the same operations:

- DatabaseGateway talks to the configured database through the Django ORM.
- InMemoryGateway keeps everything in process-local lists. It is meant for
  local development and tests; nothing survives a restart.

Both hand back plain dicts rendered by the record serializers, so callers
(the aggregation view, the admin console, the kiosk bot) never see which one
is behind them. Which one the web process uses is decided by the KIOSK_STORE
setting when the navigation app is loaded.
"""
import logging
from abc import ABC, abstractmethod

from django.apps import apps
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from .exceptions import DuplicateFloor, InvalidUpdate, RecordNotFound
from .models import Building, Connection, Floor, Room
from .serializers import BuildingSerializer, ConnectionSerializer, FloorSerializer, RoomSerializer

logger = logging.getLogger(__name__)

ROOM_UPDATABLE_FIELDS = ('name', 'description', 'image_url')


def clean_room_updates(updates):
    """Keep only the room fields that may be edited and actually carry a value."""
    cleaned = {key: value for key, value in updates.items()
               if key in ROOM_UPDATABLE_FIELDS and value is not None}
    if not cleaned:
        raise InvalidUpdate('No valid updates provided')
    return cleaned


class PersistenceGateway(ABC):
    durable = True

    @abstractmethod
    def list_buildings(self):
        """All buildings, ordered by name."""

    @abstractmethod
    def list_floors(self, building_id):
        """Floors of one building, ordered by floor number."""

    @abstractmethod
    def list_rooms(self, floor_id):
        """Rooms of one floor, ordered by name."""

    @abstractmethod
    def list_connections(self):
        """Active connections with the names of the buildings and floors they join."""

    @abstractmethod
    def get_room(self, room_id): ...

    @abstractmethod
    def create_building(self, name, description=None): ...

    @abstractmethod
    def create_floor(self, building_id, floor_number, name, description=None): ...

    @abstractmethod
    def create_room(self, floor_id, name, description=None, image_url=None,
                    position_x=None, position_y=None): ...

    @abstractmethod
    def create_connection(self, building1_id, floor1_id, building2_id, floor2_id, name,
                          is_active=True): ...

    @abstractmethod
    def update_room(self, room_id, updates): ...

    @abstractmethod
    def delete_room(self, room_id): ...

    @abstractmethod
    def delete_floor(self, floor_id): ...

    @abstractmethod
    def delete_building(self, building_id): ...

    def snapshot(self):
        """Every building with its floors and their rooms, plus active connections."""
        buildings = []
        for building in self.list_buildings():
            floors = [
                dict(floor, rooms=self.list_rooms(floor['id']))
                for floor in self.list_floors(building['id'])
            ]
            buildings.append(dict(building, floors=floors))
        return {'buildings': buildings, 'connections': self.list_connections()}


class DatabaseGateway(PersistenceGateway):

    def _get(self, model, pk):
        try:
            return model.objects.get(pk=pk)
        except (model.DoesNotExist, ValidationError, ValueError):
            raise RecordNotFound(f"{model.__name__} {pk} not found")

    def list_buildings(self):
        return BuildingSerializer(Building.objects.order_by('name'), many=True).data

    def list_floors(self, building_id):
        floors = Floor.objects.filter(building_id=building_id).order_by('floor_number')
        return FloorSerializer(floors, many=True).data

    def list_rooms(self, floor_id):
        rooms = Room.objects.filter(floor_id=floor_id).order_by('name')
        return RoomSerializer(rooms, many=True).data

    def list_connections(self):
        connections = (Connection.objects.filter(is_active=True)
                       .select_related('building1', 'building2', 'floor1', 'floor2'))
        return ConnectionSerializer(connections, many=True).data

    def get_room(self, room_id):
        return RoomSerializer(self._get(Room, room_id)).data

    def create_building(self, name, description=None):
        building = Building.objects.create(name=name, description=description or None)
        return BuildingSerializer(building).data

    def create_floor(self, building_id, floor_number, name, description=None):
        building = self._get(Building, building_id)
        if Floor.objects.filter(building=building, floor_number=floor_number).exists():
            raise DuplicateFloor(f"Floor {floor_number} already exists in {building.name}")
        try:
            with transaction.atomic():
                floor = Floor.objects.create(building=building, floor_number=floor_number,
                                             name=name, description=description or None)
        except IntegrityError:
            raise DuplicateFloor(f"Floor {floor_number} already exists in {building.name}")
        return FloorSerializer(floor).data

    def create_room(self, floor_id, name, description=None, image_url=None,
                    position_x=None, position_y=None):
        floor = self._get(Floor, floor_id)
        room = Room.objects.create(floor=floor, name=name, description=description or None,
                                   image_url=image_url or None,
                                   position_x=position_x, position_y=position_y)
        return RoomSerializer(room).data

    def create_connection(self, building1_id, floor1_id, building2_id, floor2_id, name,
                          is_active=True):
        connection = Connection.objects.create(
            building1=self._get(Building, building1_id),
            floor1=self._get(Floor, floor1_id),
            building2=self._get(Building, building2_id),
            floor2=self._get(Floor, floor2_id),
            name=name,
            is_active=is_active,
        )
        return ConnectionSerializer(connection).data

    def update_room(self, room_id, updates):
        updates = clean_room_updates(updates)
        room = self._get(Room, room_id)
        for field, value in updates.items():
            setattr(room, field, value)
        room.save(update_fields=[*updates, 'updated_at'])
        return RoomSerializer(room).data

    def _delete(self, model, pk):
        # Rooms, floors and connections below go with it through ON DELETE CASCADE.
        self._get(model, pk).delete()

    def delete_room(self, room_id):
        self._delete(Room, room_id)

    def delete_floor(self, floor_id):
        self._delete(Floor, floor_id)

    def delete_building(self, building_id):
        self._delete(Building, building_id)


class InMemoryGateway(PersistenceGateway):
    """Process-local store holding unsaved model instances."""

    durable = False

    def __init__(self):
        self.clear()

    def clear(self):
        self.buildings = []
        self.floors = []
        self.rooms = []
        self.connections = []

    @staticmethod
    def _find(items, pk, label):
        for item in items:
            if str(item.id) == str(pk):
                return item
        raise RecordNotFound(f"{label} {pk} not found")

    def list_buildings(self):
        return BuildingSerializer(sorted(self.buildings, key=lambda b: b.name), many=True).data

    def list_floors(self, building_id):
        floors = [f for f in self.floors if str(f.building_id) == str(building_id)]
        return FloorSerializer(sorted(floors, key=lambda f: f.floor_number), many=True).data

    def list_rooms(self, floor_id):
        rooms = [r for r in self.rooms if str(r.floor_id) == str(floor_id)]
        return RoomSerializer(sorted(rooms, key=lambda r: r.name), many=True).data

    def list_connections(self):
        return ConnectionSerializer([c for c in self.connections if c.is_active], many=True).data

    def get_room(self, room_id):
        return RoomSerializer(self._find(self.rooms, room_id, 'Room')).data

    def create_building(self, name, description=None):
        now = timezone.now()
        building = Building(name=name, description=description or None, created_at=now, updated_at=now)
        self.buildings.append(building)
        return BuildingSerializer(building).data

    def create_floor(self, building_id, floor_number, name, description=None):
        building = self._find(self.buildings, building_id, 'Building')
        if any(f.building_id == building.id and f.floor_number == floor_number for f in self.floors):
            raise DuplicateFloor(f"Floor {floor_number} already exists in {building.name}")
        now = timezone.now()
        floor = Floor(building=building, floor_number=floor_number, name=name,
                      description=description or None, created_at=now, updated_at=now)
        self.floors.append(floor)
        return FloorSerializer(floor).data

    def create_room(self, floor_id, name, description=None, image_url=None,
                    position_x=None, position_y=None):
        floor = self._find(self.floors, floor_id, 'Floor')
        now = timezone.now()
        room = Room(floor=floor, name=name, description=description or None,
                    image_url=image_url or None, position_x=position_x, position_y=position_y,
                    created_at=now, updated_at=now)
        self.rooms.append(room)
        return RoomSerializer(room).data

    def create_connection(self, building1_id, floor1_id, building2_id, floor2_id, name,
                          is_active=True):
        now = timezone.now()
        connection = Connection(
            building1=self._find(self.buildings, building1_id, 'Building'),
            floor1=self._find(self.floors, floor1_id, 'Floor'),
            building2=self._find(self.buildings, building2_id, 'Building'),
            floor2=self._find(self.floors, floor2_id, 'Floor'),
            name=name,
            is_active=is_active,
            created_at=now,
            updated_at=now,
        )
        self.connections.append(connection)
        return ConnectionSerializer(connection).data

    def update_room(self, room_id, updates):
        updates = clean_room_updates(updates)
        room = self._find(self.rooms, room_id, 'Room')
        for field, value in updates.items():
            setattr(room, field, value)
        room.updated_at = timezone.now()
        return RoomSerializer(room).data

    def delete_room(self, room_id):
        room = self._find(self.rooms, room_id, 'Room')
        self.rooms.remove(room)

    def delete_floor(self, floor_id):
        floor = self._find(self.floors, floor_id, 'Floor')
        floor_id = str(floor.id)
        self.floors.remove(floor)
        self.rooms = [r for r in self.rooms if str(r.floor_id) != floor_id]
        self.connections = [c for c in self.connections
                            if floor_id not in (str(c.floor1_id), str(c.floor2_id))]

    def delete_building(self, building_id):
        building = self._find(self.buildings, building_id, 'Building')
        building_id = str(building.id)
        for floor in [f for f in self.floors if str(f.building_id) == building_id]:
            self.delete_floor(floor.id)
        self.buildings.remove(building)
        self.connections = [c for c in self.connections
                            if building_id not in (str(c.building1_id), str(c.building2_id))]


def build_gateway(kind):
    if kind == 'memory':
        logger.info("Using in-memory store for development")
        return InMemoryGateway()
    if kind == 'database':
        return DatabaseGateway()
    raise ValueError(f"Unknown KIOSK_STORE {kind!r}, expected 'memory' or 'database'")


def get_gateway():
    """The gateway owned by the navigation app for this process."""
    return apps.get_app_config('navigation').gateway
