import pytest

from helpers import DeferredExecutor, FakeGateway
from models import RouteResult


@pytest.fixture
def executor():
    return DeferredExecutor()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def snapped_result():
    return RouteResult(points=[(59.0, 18.0), (59.0005, 18.0005), (59.001, 18.001)],
                       ascent=12.0, descent=4.0, distance=150.0)
