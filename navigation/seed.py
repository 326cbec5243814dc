import logging

logger = logging.getLogger(__name__)

# (building name, description, [(floor number, floor name, description, [(room name, description)])])
SAMPLE_BUILDINGS = [
    ('동행관', '복지관의 메인 건물로 다양한 교육 및 상담 프로그램이 운영됩니다.', [
        (1, '1층', '로비, 카페동행, 안내데스크가 있습니다.', [
            ('로비', '복지관 메인 로비 공간입니다.'),
            ('카페동행', '따뜻한 음료와 간단한 식사를 제공하는 카페입니다.'),
            ('안내데스크', '방문자 접수 및 안내를 담당하는 데스크입니다.'),
        ]),
        (2, '2층', '교육실과 회의실이 있습니다.', [
            ('교육실 A', '수화교육 및 언어치료 프로그램이 진행됩니다.'),
            ('교육실 B', '컴퓨터 교육 및 디지털 활용 교육이 진행됩니다.'),
            ('회의실', '직원 회의 및 소규모 모임 공간입니다.'),
        ]),
        (3, '3층', '상담실과 치료실이 있습니다.', [
            ('개별상담실 1', '1:1 개별 상담이 진행되는 공간입니다.'),
            ('개별상담실 2', '가족상담 및 집단상담이 진행되는 공간입니다.'),
            ('치료실', '언어치료 및 재활치료가 진행되는 공간입니다.'),
        ]),
        (4, '4층', '직업훈련실이 있습니다.', [
            ('제과제빵실', '제과제빵 기술을 배우는 직업훈련실입니다.'),
            ('공예실', '다양한 공예 활동이 진행되는 공간입니다.'),
            ('컴퓨터실', 'IT 관련 직업훈련이 진행되는 공간입니다.'),
        ]),
    ]),
    ('소통관', '갤러리와 전시 공간이 있는 문화 건물입니다.', [
        (1, '1층', '입구와 안내 공간입니다.', [
            ('입구홀', '소통관의 메인 입구 공간입니다.'),
            ('안내부스', '소통관 이용 안내를 제공하는 공간입니다.'),
        ]),
        (2, '2층', '갤러리동행과 전시 공간입니다.', [
            ('갤러리동행', '농아인 작가들의 작품을 전시하는 갤러리입니다.'),
            ('전시실 A', '기획전시가 진행되는 공간입니다.'),
            ('전시실 B', '상설전시 및 체험전시 공간입니다.'),
        ]),
    ]),
]

# (building name, floor number) pairs joined by a passage
SAMPLE_CONNECTIONS = [
    ('2층 연결통로', ('동행관', 2), ('소통관', 2)),
]


def seed_database(gateway):
    """Load the sample welfare-centre buildings.

    The in-memory store is wiped first; a durable store is appended to, so
    running it twice against the database duplicates the buildings.
    """
    if not gateway.durable:
        gateway.clear()

    buildings = []
    floor_ids = {}
    for name, description, floors in SAMPLE_BUILDINGS:
        building = gateway.create_building(name, description)
        buildings.append(building)
        for floor_number, floor_name, floor_description, rooms in floors:
            floor = gateway.create_floor(building['id'], floor_number, floor_name, floor_description)
            floor_ids[(name, floor_number)] = (building['id'], floor['id'])
            for room_name, room_description in rooms:
                gateway.create_room(floor['id'], room_name, room_description)
    logger.info(f"Created {len(buildings)} sample buildings")

    for connection_name, first, second in SAMPLE_CONNECTIONS:
        building1_id, floor1_id = floor_ids[first]
        building2_id, floor2_id = floor_ids[second]
        gateway.create_connection(building1_id, floor1_id, building2_id, floor2_id, connection_name)

    message = 'Database seeded successfully' if gateway.durable else 'Mock database seeded successfully'
    logger.info(message)
    return {'buildings': buildings, 'message': message}
