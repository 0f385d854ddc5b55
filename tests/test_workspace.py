"""Tests for per-attempt render workspaces."""

from autocaption.render.workspace import RenderWorkspace


class TestRenderWorkspace:

    def test_creates_fresh_directories(self, tmp_path):
        a = RenderWorkspace(base_dir=tmp_path, keep=False)
        b = RenderWorkspace(base_dir=tmp_path, keep=False)
        assert a.path.is_dir() and b.path.is_dir()
        assert a.path != b.path

    def test_context_manager_removes_tree(self, tmp_path):
        with RenderWorkspace(base_dir=tmp_path, keep=False) as ws:
            (ws.path / "scratch.bin").write_bytes(b"x")
            path = ws.path
        assert not path.exists()

    def test_cleanup_is_idempotent(self, tmp_path):
        ws = RenderWorkspace(base_dir=tmp_path, keep=False)
        ws.cleanup()
        ws.cleanup()
        assert not ws.path.exists()

    def test_keep_leaves_directory(self, tmp_path):
        ws = RenderWorkspace(base_dir=tmp_path, keep=True)
        ws.cleanup()
        assert ws.path.is_dir()

    def test_removed_on_exception(self, tmp_path):
        path = None
        try:
            with RenderWorkspace(base_dir=tmp_path, keep=False) as ws:
                path = ws.path
                raise RuntimeError("render crashed")
        except RuntimeError:
            pass
        assert path is not None and not path.exists()

    def test_file_names_are_timestamped(self, tmp_path):
        ws = RenderWorkspace(base_dir=tmp_path, keep=False)
        out = ws.file("out", ".mp4")
        assert out.parent == ws.path
        assert out.name.startswith("out-")
        assert out.suffix == ".mp4"
        ws.cleanup()
