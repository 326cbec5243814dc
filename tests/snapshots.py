def room(room_id, floor_id, name):
    return {'id': room_id, 'floor_id': floor_id, 'name': name, 'description': None, 'image_url': None,
            'position_x': None, 'position_y': None}


def make_snapshot():
    """Two buildings joined on their 2nd floors, shaped like a kiosk-data response."""
    return {
        'buildings': [
            {'id': 'b1', 'name': '동행관', 'floors': [
                {'id': 'f1', 'building_id': 'b1', 'floor_number': 1, 'name': '1층',
                 'rooms': [room('r1', 'f1', '로비'), room('r2', 'f1', '카페동행')]},
                {'id': 'f2', 'building_id': 'b1', 'floor_number': 2, 'name': '2층',
                 'rooms': [room('r3', 'f2', '교육실 A')]},
            ]},
            {'id': 'b2', 'name': '소통관', 'floors': [
                {'id': 'f3', 'building_id': 'b2', 'floor_number': 2, 'name': '2층',
                 'rooms': [room('r4', 'f3', '갤러리동행')]},
            ]},
        ],
        'connections': [
            {'id': 'c1', 'name': '2층 연결통로', 'building1_id': 'b1', 'floor1_id': 'f2',
             'building2_id': 'b2', 'floor2_id': 'f3', 'is_active': True},
        ],
        'timestamp': 1700000000000,
    }


def returning(payload):
    async def fetch():
        return payload
    return fetch
