from __future__ import annotations

import pytest

from fakes import FakeApi, make_client
from vigisaude.maps.canvas import FoliumCanvas
from vigisaude.maps.manager import MapLayerManager


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
def client(api):
    return make_client(api)


@pytest.fixture
def canvas():
    return FoliumCanvas()


@pytest.fixture
def manager(canvas, client):
    return MapLayerManager(canvas, client, zoom_threshold=6, disease="dengue")
