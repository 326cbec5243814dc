from django.urls import path
from . import views

urlpatterns = [
    path('kiosk-data/', views.kiosk_data, name='kiosk-data'),
    path('admin-console/', views.admin_console, name='admin-console'),
]
