import pytest

from sitegrade.scanner.base import ProbeContext
from tests.fakes import FakeSite

TARGET = "https://example.com"


@pytest.fixture
def site():
    return FakeSite()


@pytest.fixture
def ctx(site):
    return ProbeContext(url=TARGET, timeout=2, session_factory=site.session)
