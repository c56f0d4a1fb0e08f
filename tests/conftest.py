"""
Shared Test Fixtures
"""

import pytest

from cqrs_sync.core.platform import ManualPlatform

from fakes import FakeHttp


@pytest.fixture
def platform() -> ManualPlatform:
    return ManualPlatform()


@pytest.fixture
def http(platform) -> FakeHttp:
    return FakeHttp(clock=platform)
