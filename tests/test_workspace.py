"""Tests for workspace lifecycle management."""

from types import SimpleNamespace

import pytest

from super_gsi.storage.exceptions import WorkspaceError
from super_gsi.storage.validation import resolve_input_path
from super_gsi.storage.workspace import Workspace


@pytest.fixture
def workspace(tmp_path):
    ws = Workspace(tmp_path / "work")
    ws.create()
    return ws


class TestCreate:
    def test_creates_nested_directory(self, tmp_path):
        ws = Workspace(tmp_path / "a" / "b" / "work")
        ws.create()
        assert ws.root.is_dir()

    def test_existing_directory_is_fine(self, workspace):
        workspace.create()
        assert workspace.root.is_dir()

    def test_file_in_the_way(self, tmp_path):
        blocker = tmp_path / "work"
        blocker.write_text("not a dir")

        with pytest.raises(WorkspaceError):
            Workspace(blocker).create()

    def test_paths(self, workspace):
        assert workspace.extract_dir == workspace.root / "extracted"
        assert workspace.package_dir == workspace.root / "odin_package"
        assert workspace.super_raw_path == workspace.root / "super_raw.img"


class TestCleanStale:
    def test_removes_known_artifacts(self, workspace):
        (workspace.extract_dir).mkdir()
        (workspace.extract_dir / "system.img").write_bytes(b"x")
        (workspace.package_dir).mkdir()
        workspace.super_raw_path.write_bytes(b"x")
        for name in ("old_AP.tar", "old_AP.tar.md5", "old_super.img", "temp_1.img", "work_2.img", "x_modified.img"):
            (workspace.root / name).write_bytes(b"x")

        removed = workspace.clean_stale()

        assert len(removed) == 9
        assert list(workspace.root.iterdir()) == []

    def test_keeps_user_files(self, workspace):
        user_super = workspace.root / "super.img"
        user_gsi = workspace.root / "gsi.img"
        user_super.write_bytes(b"s")
        user_gsi.write_bytes(b"g")

        workspace.clean_stale()

        assert user_super.exists()
        assert user_gsi.exists()

    def test_protected_input_matching_pattern_survives(self, workspace):
        user_input = workspace.root / "stock_super.img"
        user_input.write_bytes(b"s")

        workspace.clean_stale(keep=(user_input,))

        assert user_input.exists()

    def test_symlinked_root_protects_resolved_input(self, tmp_path):
        real = tmp_path / "real"
        real.mkdir()
        link = tmp_path / "link"
        link.symlink_to(real, target_is_directory=True)
        user_super = real / "stock_super.img"
        user_super.write_bytes(b"s")
        (real / "old_modified.img").write_bytes(b"x")

        user_input = resolve_input_path(str(link / "stock_super.img"))

        removed = Workspace(link).clean_stale(keep=(user_input,))

        assert user_super.exists()
        assert [path.name for path in removed] == ["old_modified.img"]

    def test_symlinked_root_is_resolved(self, tmp_path):
        (tmp_path / "real").mkdir()
        (tmp_path / "link").symlink_to(tmp_path / "real", target_is_directory=True)

        assert Workspace(tmp_path / "link").root == tmp_path / "real"


class TestFreeSpace:
    def test_enough_space(self, workspace, mocker):
        mocker.patch(
            "super_gsi.storage.workspace.psutil.disk_usage",
            return_value=SimpleNamespace(free=10 * 1024**3),
        )
        assert workspace.check_free_space(5 * 1024**3) is None

    def test_low_space_warns(self, workspace, mocker):
        disk_usage = mocker.patch(
            "super_gsi.storage.workspace.psutil.disk_usage",
            return_value=SimpleNamespace(free=1024**3),
        )

        warning = workspace.check_free_space(5 * 1024**3)

        assert warning.code == "low_disk_space"
        assert "Required: 5.0GB" in warning.details
        assert "Available: 1.0GB" in warning.details
        disk_usage.assert_called_once_with(str(workspace.root))


class TestCleanup:
    def test_removes_intermediates_and_generated_raw(self, workspace):
        workspace.extract_dir.mkdir()
        workspace.package_dir.mkdir()
        workspace.super_raw_path.write_bytes(b"x")
        output = workspace.root / "out_AP.tar.md5"
        output.write_bytes(b"x")

        workspace.cleanup(remove_super_raw=True)

        assert not workspace.extract_dir.exists()
        assert not workspace.package_dir.exists()
        assert not workspace.super_raw_path.exists()
        assert output.exists()

    def test_keeps_raw_when_not_generated(self, workspace):
        workspace.super_raw_path.write_bytes(b"user file")

        workspace.cleanup(remove_super_raw=False)

        assert workspace.super_raw_path.exists()

    def test_removal_failure_is_workspace_error(self, workspace, mocker):
        workspace.extract_dir.mkdir()
        mocker.patch(
            "super_gsi.storage.workspace.shutil.rmtree", side_effect=PermissionError("busy")
        )

        with pytest.raises(WorkspaceError, match="Could not remove temporary files"):
            workspace.cleanup(remove_super_raw=False)


def test_stale_removal_failure_is_workspace_error(workspace, mocker):
    (workspace.root / "old_AP.tar").write_bytes(b"x")
    mocker.patch("pathlib.Path.unlink", side_effect=PermissionError("read-only"))

    with pytest.raises(WorkspaceError, match="read-only"):
        workspace.clean_stale()
