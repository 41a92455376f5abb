import io

import pytest

from gust.client import Client, Flags
from gust.vm import VM


def make_flags(**overrides):
    values = dict(help=False, version=False, verbose=False, repl=False,
                  nocolor=True, unknown=False)
    values.update(overrides)
    return Flags(**values)


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def vm(output):
    with VM(stdout=output) as vm:
        vm.load_stdlib()
        yield vm


@pytest.fixture
def client(vm, output):
    return Client(vm, make_flags(), output)
