import inspect

import pytest

from trio.testing import MockClock, trio_test

from ..testing import FakeNTPNet


@pytest.fixture
def autojump_clock():
    return MockClock(autojump_threshold=0)


@pytest.fixture
def fake_net():
    # Call .enable() from inside the test, since it needs a running trio
    return FakeNTPNet()


# async tests get run under trio_test, the same way trio's own test suite
# does it (no pytest plugin needed)
@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    if inspect.iscoroutinefunction(pyfuncitem.obj):
        pyfuncitem.obj = trio_test(pyfuncitem.obj)
