import logging
import time

from rest_framework import serializers
from rest_framework.decorators import api_view
from rest_framework.response import Response

from .exceptions import InvalidRecord, InvalidUpdate, RecordNotFound
from .gateway import get_gateway
from .seed import seed_database
from .serializers import (
    BuildingInputSerializer,
    BuildingRefSerializer,
    FloorInputSerializer,
    FloorRefSerializer,
    RoomInputSerializer,
    RoomRefSerializer,
    RoomUpdateSerializer,
)
from .storage import delete_image, generate_image_filename, upload_image, validate_image_file

logger = logging.getLogger(__name__)

KIOSK_CACHE_CONTROL = 'public, max-age=60, s-maxage=300'


def now_millis():
    return int(time.time() * 1000)


@api_view(['GET'])
def kiosk_data(request):
    try:
        snapshot = get_gateway().snapshot()
    except Exception:
        logger.exception('Error loading kiosk data')
        return Response({
            'error': 'Failed to load data',
            'buildings': [],
            'connections': [],
            'timestamp': now_millis(),
        }, status=500)
    response = Response({**snapshot, 'timestamp': now_millis()})
    response['Cache-Control'] = KIOSK_CACHE_CONTROL
    return response


def validation_message(detail):
    """Flatten DRF error detail into the single line the admin form shows."""
    if isinstance(detail, dict):
        field, errors = next(iter(detail.items()))
        return f"{field}: {validation_message(errors)}"
    if isinstance(detail, list):
        return validation_message(detail[0])
    return str(detail)


def _validated(serializer_class, data):
    serializer = serializer_class(data=data)
    serializer.is_valid(raise_exception=True)
    return dict(serializer.validated_data)


def _discard_image(url):
    if not url:
        return
    try:
        delete_image(url)
    except OSError:
        logger.warning(f"Could not delete image {url}", exc_info=True)


def create_building(gateway, data):
    fields = _validated(BuildingInputSerializer, data)
    building = gateway.create_building(fields['name'], fields.get('description'))
    return {'success': True, 'building': building}


def create_floor(gateway, data):
    fields = _validated(FloorInputSerializer, data)
    floor = gateway.create_floor(fields['building_id'], fields['floor_number'],
                                 fields['name'], fields.get('description'))
    return {'success': True, 'floor': floor}


def create_room(gateway, data):
    fields = _validated(RoomInputSerializer, data)
    image = fields.get('image')
    image_format = validate_image_file(image) if image else None
    room = gateway.create_room(
        fields['floor_id'], fields['name'], fields.get('description'),
        position_x=fields.get('position_x'), position_y=fields.get('position_y'),
    )
    if image:
        image_url = None
        try:
            image_url = upload_image(image, generate_image_filename(room['id'], image_format))
            room = gateway.update_room(room['id'], {'image_url': image_url})
        except Exception:
            # A room is only created together with its image.
            gateway.delete_room(room['id'])
            _discard_image(image_url)
            raise
    return {'success': True, 'room': room}


def update_room(gateway, data):
    fields = _validated(RoomUpdateSerializer, data)
    room_id = fields.pop('room_id')
    image = fields.pop('image', None)
    updates = {key: value for key, value in fields.items() if value}
    if not updates and not image:
        raise InvalidUpdate('No valid updates provided')

    previous_image = None
    if image:
        image_format = validate_image_file(image)
        previous_image = gateway.get_room(room_id)['image_url']
        updates['image_url'] = upload_image(image, generate_image_filename(room_id, image_format))

    try:
        room = gateway.update_room(room_id, updates)
    except Exception:
        _discard_image(updates.get('image_url'))
        raise
    _discard_image(previous_image)
    return {'success': True, 'room': room}


def delete_room(gateway, data):
    room_id = _validated(RoomRefSerializer, data)['room_id']
    room = gateway.get_room(room_id)
    gateway.delete_room(room_id)
    _discard_image(room['image_url'])
    return {'success': True}


def delete_floor(gateway, data):
    gateway.delete_floor(_validated(FloorRefSerializer, data)['floor_id'])
    return {'success': True}


def delete_building(gateway, data):
    gateway.delete_building(_validated(BuildingRefSerializer, data)['building_id'])
    return {'success': True}


def seed(gateway, data):
    seed_database(gateway)
    return {'success': True, 'message': '샘플 데이터가 성공적으로 생성되었습니다.'}


ADMIN_ACTIONS = {
    'createBuilding': create_building,
    'createFloor': create_floor,
    'createRoom': create_room,
    'updateRoom': update_room,
    'deleteRoom': delete_room,
    'deleteFloor': delete_floor,
    'deleteBuilding': delete_building,
    'seedDatabase': seed,
}


@api_view(['GET', 'POST'])
def admin_console(request):
    gateway = get_gateway()
    if request.method == 'GET':
        try:
            return Response({'buildings': gateway.snapshot()['buildings']})
        except Exception:
            logger.exception('Error loading admin data')
            return Response({'buildings': [], 'error': 'Failed to load data'})

    action = request.data.get('action')
    handler = ADMIN_ACTIONS.get(action)
    if handler is None:
        return Response({'error': 'Invalid action'}, status=400)

    try:
        return Response(handler(gateway, request.data))
    except serializers.ValidationError as e:
        return Response({'error': validation_message(e.detail)}, status=400)
    except RecordNotFound as e:
        return Response({'error': str(e)}, status=404)
    except InvalidRecord as e:
        return Response({'error': str(e)}, status=400)
    except Exception as e:
        logger.exception(f"Admin action {action} failed")
        return Response({'error': str(e) or 'Unknown error'}, status=500)
