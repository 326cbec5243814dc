import pytest
from rest_framework.test import APIClient

from navigation import views
from navigation.gateway import DatabaseGateway, InMemoryGateway
from navigation.seed import seed_database


@pytest.fixture(params=['memory', 'database'])
def gateway(request):
    """Each gateway test runs against both backends."""
    if request.param == 'database':
        request.getfixturevalue('db')
        return DatabaseGateway()
    return InMemoryGateway()


@pytest.fixture
def memory_gateway():
    return InMemoryGateway()


@pytest.fixture
def seeded_gateway(memory_gateway):
    seed_database(memory_gateway)
    return memory_gateway


@pytest.fixture
def console(monkeypatch, memory_gateway):
    """API client whose views talk to an isolated in-memory gateway."""
    monkeypatch.setattr(views, 'get_gateway', lambda: memory_gateway)
    return APIClient()


@pytest.fixture
def media_root(settings, tmp_path):
    settings.MEDIA_ROOT = tmp_path
    settings.MEDIA_URL = '/media/'
    return tmp_path


