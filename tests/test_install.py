import json
import os
import sys

import pytest

import lc3vm.install


@pytest.fixture
def installed(monkeypatch):
    calls = []

    def install_kernel_spec(source_dir, kernel_name, user, prefix):
        with open(os.path.join(source_dir, "kernel.json")) as f:
            spec = json.load(f)
        calls.append((spec, kernel_name, user, prefix))
        return "/kernels/" + kernel_name

    monkeypatch.setattr(lc3vm.install, "install_kernel_spec", install_kernel_spec)
    return calls


def test_user_install(installed, capsys):
    assert lc3vm.install.install_my_kernel_spec() == "/kernels/lc3vm"
    spec, name, user, prefix = installed[0]
    assert name == "lc3vm"
    assert user and prefix is None
    assert spec["argv"][:3] == [sys.executable, "-m", "lc3vm.kernel"]
    assert spec["language"] == "lc3"
    assert "Installing" in capsys.readouterr().out


def test_sys_prefix_install(installed):
    lc3vm.install.main(["--sys-prefix"])
    spec, name, user, prefix = installed[0]
    assert not user
    assert prefix == sys.prefix
