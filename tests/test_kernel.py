import pytest

pytest.importorskip("metakernel")

from lc3vm.kernel import KernelOutput, LC3VMKernel
from lc3vm.lc3 import LC3

from conftest import FakeKernel


@pytest.fixture
def lc3_kernel():
    # skip MetaKernel.__init__, which wants a live Jupyter session
    kernel = LC3VMKernel.__new__(LC3VMKernel)
    kernel.lc3 = LC3()
    return kernel


@pytest.mark.parametrize("token, expected", [
    ("LD", ["LD", "LDI", "LDR"]),
    ("PUT", ["PUTS", "PUTSP"]),
    (".O", [".ORIG"]),
    ("%re", ["%reg", "%regs", "%reset"]),
])
def test_completions(lc3_kernel, token, expected):
    assert sorted(lc3_kernel.get_completions({"help_obj": token})) == expected


def test_help(lc3_kernel):
    assert lc3_kernel.get_kernel_help_on({"code": "%exe"}).startswith("%exe")
    assert lc3_kernel.get_kernel_help_on({"code": "%save"}).startswith("%save")
    assert lc3_kernel.get_kernel_help_on({"code": "%nope"}, none_on_fail=True) is None
    assert "No available help" in lc3_kernel.get_kernel_help_on({"code": "%nope"})


def test_usage_lists_every_directive(lc3_kernel):
    usage = lc3_kernel.get_usage()
    for magic in LC3VMKernel.lc3_magics:
        assert " %s " % magic in usage


def test_is_complete(lc3_kernel):
    assert lc3_kernel.do_is_complete("") == {"status": "incomplete"}
    assert lc3_kernel.do_is_complete("xF025")["status"] == "incomplete"
    assert lc3_kernel.do_is_complete("xF025\n") == {"status": "complete"}


def test_output_goes_to_kernel():
    kernel = FakeKernel()
    output = KernelOutput(kernel)
    lc3 = LC3(output=output, kernel=kernel)
    lc3.load_words(0x3000, [0xE002, 0xF022, 0xF025, 0x48, 0x49, 0])
    lc3.run(0x3000)
    assert kernel.text == "HI"


def test_unexpected_error_is_reported(lc3_kernel):
    class Broken(object):
        def execute(self, text):
            raise RuntimeError("boom")

    errors = []
    lc3_kernel.lc3 = Broken()
    lc3_kernel.Error = errors.append
    lc3_kernel.do_execute_direct("%exe")
    assert errors == ["boom"]
