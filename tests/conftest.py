"""
Pytest configuration and shared fixtures for super-gsi tests.

External Android tools are never executed: ``subprocess.run`` is replaced
by FakeAndroidTools, which emulates just enough of file, simg2img,
lpunpack, lpmake, tar and md5sum to drive the pipeline on tiny files.
"""

import hashlib
import shutil
import subprocess
import tarfile
from pathlib import Path
from typing import Dict, List
from unittest.mock import Mock

import pytest

from super_gsi.config import settings


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture(autouse=True)
def default_settings():
    """Every test starts from the default settings, never the user's file."""
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)
    yield settings.settings_store
    settings.settings_store.values = dict(settings.DEFAULT_SETTINGS)


@pytest.fixture
def temp_settings_file(tmp_path) -> Path:
    settings_dir = tmp_path / ".config" / "super-gsi"
    settings_dir.mkdir(parents=True, exist_ok=True)
    return settings_dir / "settings.json"


# ==============================================================================
# Image Fixtures
# ==============================================================================


@pytest.fixture
def make_image(tmp_path):
    """Factory writing a small file standing in for an image."""

    def _make(name: str, size: int = 4096, fill: bytes = b"\x5a", directory: Path = None) -> Path:
        directory = directory or tmp_path / "inputs"
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / name
        path.write_bytes(fill * size)
        return path

    return _make


@pytest.fixture
def extract_dir(tmp_path) -> Path:
    """An extraction directory with system, vendor and product images."""
    directory = tmp_path / "extracted"
    directory.mkdir()
    (directory / "system.img").write_bytes(b"s" * 1000)
    (directory / "vendor.img").write_bytes(b"v" * 300)
    (directory / "product.img").write_bytes(b"p" * 200)
    return directory


# ==============================================================================
# Subprocess Mock Fixtures
# ==============================================================================


@pytest.fixture
def mock_subprocess_run(mocker) -> Mock:
    """subprocess.run as seen by the command runners, succeeding by default."""
    return mocker.patch(
        "super_gsi.storage.command_runners.subprocess.run",
        return_value=Mock(returncode=0, stdout="", stderr=""),
    )


class FakeAndroidTools:
    """Callable replacement for subprocess.run emulating the Android tools."""

    def __init__(self):
        self.descriptions: Dict[str, str] = {}
        self.default_description = "data"
        self.partitions: Dict[str, bytes] = {
            "system": b"S" * 2048,
            "vendor": b"V" * 1024,
            "product": b"P" * 512,
        }
        self.failing: set = set()
        self.lpmake_sparse_fails = False
        self.calls: List[List[str]] = []

    def describe(self, path: Path, description: str) -> None:
        self.descriptions[str(path)] = description

    def calls_to(self, tool: str) -> List[List[str]]:
        return [call for call in self.calls if Path(call[0]).name == tool]

    def __call__(self, command, **kwargs):
        command = [str(part) for part in command]
        self.calls.append(command)
        tool = Path(command[0]).name
        if tool in self.failing:
            return self._result(command, 1, stderr=f"{tool}: simulated failure")
        handler = getattr(self, f"_run_{tool}", None)
        if handler is None:
            return self._result(command, 127, stderr=f"{tool}: not emulated")
        return handler(command, kwargs.get("cwd"))

    @staticmethod
    def _result(command, returncode, stdout="", stderr=""):
        return subprocess.CompletedProcess(command, returncode, stdout=stdout, stderr=stderr)

    def _run_file(self, command, cwd):
        path = command[-1]
        return self._result(command, 0, stdout=self.descriptions.get(path, self.default_description) + "\n")

    def _run_simg2img(self, command, cwd):
        shutil.copyfile(command[1], command[2])
        return self._result(command, 0)

    def _run_lpunpack(self, command, cwd):
        destination = Path(command[2])
        destination.mkdir(parents=True, exist_ok=True)
        for name, data in self.partitions.items():
            (destination / f"{name}.img").write_bytes(data)
        return self._result(command, 0)

    def _run_lpmake(self, command, cwd):
        output = Path(command[command.index("--output") + 1])
        if "--sparse" in command and self.lpmake_sparse_fails:
            return self._result(command, 1, stdout="Invalid sparse file format at header magic\n")
        with open(output, "wb") as handle:
            for index, arg in enumerate(command):
                if arg == "--image":
                    image_path = command[index + 1].split("=", 1)[1]
                    handle.write(Path(image_path).read_bytes())
        return self._result(command, 0, stdout="Invalid sparse file format at header magic\n")

    def _run_tar(self, command, cwd):
        archive = Path(command[2])
        with tarfile.open(archive, "w", format=tarfile.USTAR_FORMAT) as tar:
            for member in command[3:]:
                tar.add(Path(cwd) / member, arcname=member)
        return self._result(command, 0)

    def _run_md5sum(self, command, cwd):
        digest = hashlib.md5(Path(command[1]).read_bytes()).hexdigest()
        return self._result(command, 0, stdout=f"{digest}  {command[1]}\n")


@pytest.fixture
def fake_tools(mocker) -> FakeAndroidTools:
    """Install FakeAndroidTools and put every tool on the fake PATH."""
    tools = FakeAndroidTools()
    mocker.patch("super_gsi.storage.command_runners.subprocess.run", side_effect=tools)
    mocker.patch(
        "super_gsi.storage.command_runners.shutil.which",
        side_effect=lambda name: f"/data/data/com.termux/files/usr/bin/{name}",
    )
    return tools
