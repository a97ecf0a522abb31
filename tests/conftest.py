import pytest

from fakes import FakeView


@pytest.fixture
def view() -> FakeView:
    return FakeView()
