"""Tests for the workspace manager."""

import pytest

from forge_core import PathEscapeError, WorkspaceError
from forge_runtime import WorkspaceManager, is_valid_project_id


@pytest.fixture
def workspace(tmp_path):
    """Create a workspace rooted in a temp directory."""
    manager = WorkspaceManager(tmp_path / "ws")
    manager.ensure_root()
    return manager


class TestProjectPaths:
    """Tests for project id and path resolution."""

    @pytest.mark.parametrize(
        ("project_id", "valid"),
        [
            ("proj-1", True),
            ("my-session_1.v2", True),
            ("my session", False),
            ("a/b", False),
            ("x..y", False),
            (".hidden", False),
            ("", False),
            (None, False),
        ],
    )
    def test_is_valid_project_id(self, project_id, valid):
        assert is_valid_project_id(project_id) is valid

    def test_project_dir_created_on_demand(self, workspace):
        path = workspace.project_dir("demo")
        assert path.is_dir()
        assert path.parent == workspace.root

    @pytest.mark.parametrize("project_id", ["../evil", "a/b", "", "..", "/abs"])
    def test_invalid_project_ids_rejected(self, workspace, project_id):
        with pytest.raises(WorkspaceError):
            workspace.project_dir(project_id)

    def test_resolve_nested_path(self, workspace):
        path = workspace.resolve("demo", "src/app.js")
        assert path == workspace.root / "demo" / "src" / "app.js"

    @pytest.mark.parametrize("bad_path", ["../outside.txt", "a/../../x.txt", "/etc/passwd", ".", ""])
    def test_escaping_paths_rejected(self, workspace, bad_path):
        with pytest.raises(PathEscapeError):
            workspace.resolve("demo", bad_path)


@pytest.mark.asyncio
class TestFileOperations:
    """Tests for writing, reading and listing files."""

    async def test_write_creates_parents_and_reports_bytes(self, workspace):
        written = await workspace.write_file("demo", "src/app.js", "console.log('é')")

        target = workspace.root / "demo" / "src" / "app.js"
        assert target.read_text(encoding="utf-8") == "console.log('é')"
        assert written == len("console.log('é')".encode("utf-8"))

    async def test_write_overwrites(self, workspace):
        await workspace.write_file("demo", "index.html", "first")
        await workspace.write_file("demo", "index.html", "second")

        assert (workspace.root / "demo" / "index.html").read_text() == "second"

    async def test_escaping_write_leaves_filesystem_untouched(self, workspace, tmp_path):
        with pytest.raises(PathEscapeError):
            await workspace.write_file("demo", "../../escaped.txt", "nope")

        assert not (tmp_path / "escaped.txt").exists()
        assert not (workspace.root / "escaped.txt").exists()

    async def test_read_file(self, workspace):
        await workspace.write_file("demo", "README.md", "# Hi")

        file = await workspace.read_file("demo", "README.md")

        assert file.to_dict() == {"path": "README.md", "name": "README.md", "content": "# Hi", "size": 4}

    async def test_read_disallowed_extension(self, workspace):
        await workspace.write_file("demo", "secret.env", "KEY=1")

        with pytest.raises(WorkspaceError):
            await workspace.read_file("demo", "secret.env")

    async def test_read_missing_file(self, workspace):
        with pytest.raises(WorkspaceError) as exc_info:
            await workspace.read_file("demo", "missing.txt")
        assert exc_info.value.status_code == 404

    async def test_list_files_filters_and_skips(self, workspace):
        await workspace.write_file("demo", "index.html", "<h1>hi</h1>")
        await workspace.write_file("demo", "css/style.css", "body {}")
        await workspace.write_file("demo", "image.png", "not really")
        await workspace.write_file("demo", "node_modules/lib/index.js", "skip")
        await workspace.write_file("demo", "dist/bundle.js", "skip")

        files = await workspace.list_files("demo")

        assert [f.path for f in files] == ["index.html", "css/style.css"]
        assert files[1].name == "style.css"

    async def test_list_files_of_unknown_project(self, workspace):
        assert await workspace.list_files("nothing-here") == []

    async def test_list_files_skips_symlink_escape(self, workspace, tmp_path):
        outside = tmp_path / "outside.txt"
        outside.write_text("secret")
        project = workspace.project_dir("demo")
        (project / "link.txt").symlink_to(outside)

        files = await workspace.list_files("demo")

        assert files == []
