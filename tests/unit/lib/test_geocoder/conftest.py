"""Fixtures for geocoder library tests."""

import pytest

from tests.unit.lib.test_geocoder.fakes import FakeGeocoder, RecordingSleep


@pytest.fixture
def fake_geocoder() -> FakeGeocoder:
    return FakeGeocoder()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()
