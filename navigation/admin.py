from django.contrib import admin
from .models import Building, Connection, Floor, Room


class FloorInline(admin.TabularInline):
    model = Floor
    extra = 1


class RoomInline(admin.TabularInline):
    model = Room
    extra = 1
    fields = ('name', 'description', 'image_url', 'position_x', 'position_y')


@admin.register(Building)
class BuildingAdmin(admin.ModelAdmin):
    list_display = ('name', 'updated_at')
    search_fields = ('name',)
    inlines = [FloorInline]


@admin.register(Floor)
class FloorAdmin(admin.ModelAdmin):
    list_display = ('name', 'building', 'floor_number')
    list_filter = ('building',)
    inlines = [RoomInline]


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ('name', 'floor', 'position_x', 'position_y')
    search_fields = ('name',)


@admin.register(Connection)
class ConnectionAdmin(admin.ModelAdmin):
    list_display = ('name', 'building1', 'floor1', 'building2', 'floor2', 'is_active')
    list_filter = ('is_active',)
