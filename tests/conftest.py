import io

import pytest

from lc3vm.console import BufferKeyboard
from lc3vm.lc3 import LC3


class FakeKernel(object):
    """ Collects what the machine reports, like a MetaKernel would """

    def __init__(self):
        self.printed = []
        self.errors = []

    def Print(self, *args, end="\n"):
        self.printed.append(" ".join(str(arg) for arg in args) + end)

    def Error(self, string):
        self.errors.append(string)

    @property
    def text(self):
        return "".join(self.printed)


@pytest.fixture
def keyboard():
    return BufferKeyboard()


@pytest.fixture
def console():
    return io.StringIO()


@pytest.fixture
def lc3(keyboard, console):
    return LC3(keyboard=keyboard, output=console)


@pytest.fixture
def kernel():
    return FakeKernel()
