from rest_framework import serializers
from .models import Building, Connection, Floor, Room


class BuildingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Building
        fields = ['id', 'name', 'description', 'created_at', 'updated_at']


class FloorSerializer(serializers.ModelSerializer):
    building_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Floor
        fields = ['id', 'building_id', 'floor_number', 'name', 'description', 'created_at', 'updated_at']


class RoomSerializer(serializers.ModelSerializer):
    floor_id = serializers.UUIDField(read_only=True)

    class Meta:
        model = Room
        fields = [
            'id', 'floor_id', 'name', 'description', 'image_url',
            'position_x', 'position_y', 'created_at', 'updated_at',
        ]


class ConnectionSerializer(serializers.ModelSerializer):
    building1_id = serializers.UUIDField(read_only=True)
    building2_id = serializers.UUIDField(read_only=True)
    floor1_id = serializers.UUIDField(read_only=True)
    floor2_id = serializers.UUIDField(read_only=True)
    building1_name = serializers.CharField(source='building1.name', read_only=True)
    building2_name = serializers.CharField(source='building2.name', read_only=True)
    floor1_name = serializers.CharField(source='floor1.name', read_only=True)
    floor2_name = serializers.CharField(source='floor2.name', read_only=True)

    class Meta:
        model = Connection
        fields = [
            'id', 'building1_id', 'building2_id', 'floor1_id', 'floor2_id', 'name', 'is_active',
            'building1_name', 'building2_name', 'floor1_name', 'floor2_name',
            'created_at', 'updated_at',
        ]


# Admin console form inputs

class BuildingInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class FloorInputSerializer(serializers.Serializer):
    building_id = serializers.CharField()
    floor_number = serializers.IntegerField()
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RoomInputSerializer(serializers.Serializer):
    floor_id = serializers.CharField()
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    position_x = serializers.IntegerField(required=False, allow_null=True)
    position_y = serializers.IntegerField(required=False, allow_null=True)
    image = serializers.FileField(required=False)


class RoomUpdateSerializer(serializers.Serializer):
    room_id = serializers.CharField()
    name = serializers.CharField(required=False, max_length=255)
    description = serializers.CharField(required=False)
    image = serializers.FileField(required=False)


class RoomRefSerializer(serializers.Serializer):
    room_id = serializers.CharField()


class FloorRefSerializer(serializers.Serializer):
    floor_id = serializers.CharField()


class BuildingRefSerializer(serializers.Serializer):
    building_id = serializers.CharField()
