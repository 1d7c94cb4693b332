import pytest

from esystem.config import Settings

from .helpers import make_settings


@pytest.fixture
def settings() -> Settings:
    return make_settings()
