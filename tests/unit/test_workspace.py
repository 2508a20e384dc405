"""
Unit tests for the workspace materializer.

Tests quire.contexts.rendering.workspace.
"""

import base64

import pytest

from quire.contexts.rendering import workspace as workspace_module
from quire.contexts.rendering.exceptions import InvalidSourceFileError
from quire.contexts.rendering.workspace import (
    SourceFile,
    Workspace,
    load_project_files,
    normalize_relative_path,
    open_workspace,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\xff\xfe"


class TestNormalizeRelativePath:
    """Tests for path validation and normalization."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("main.tex", "main.tex"),
            ("chapters/ch1.tex", "chapters/ch1.tex"),
            ("./figures/plot.png", "figures/plot.png"),
            ("chapters\\ch2.tex", "chapters/ch2.tex"),
            ("a//b/./c.tex", "a/b/c.tex"),
        ],
    )
    def test_safe_paths(self, raw, expected):
        """Relative paths are normalized to POSIX form."""
        assert normalize_relative_path(raw) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw",
        ["../evil.tex", "chapters/../../evil.tex", "..\\evil.tex", "/etc/passwd", "C:/x.tex", "", "   ", "./"],
    )
    def test_unsafe_paths_rejected(self, raw):
        """Traversal, absolute and empty paths raise InvalidSourceFileError."""
        with pytest.raises(InvalidSourceFileError):
            normalize_relative_path(raw)


class TestSourceFile:
    """Tests for SourceFile construction and payload decoding."""

    @pytest.mark.unit
    def test_from_dict_collaborator_payload(self):
        """{path, content, isBinary} maps onto SourceFile."""
        source_file = SourceFile.from_dict({"path": "fig.png", "content": "AAAA", "isBinary": True})

        assert source_file.path == "fig.png"
        assert source_file.is_binary is True

    @pytest.mark.unit
    @pytest.mark.parametrize("entry", [{"content": "x"}, {"path": "main.tex"}, {}])
    def test_from_dict_missing_keys(self, entry):
        """Entries without path or content are caller errors, not KeyErrors."""
        with pytest.raises(InvalidSourceFileError) as exc_info:
            SourceFile.from_dict(entry)

        assert exc_info.value.status_code == 400

    @pytest.mark.unit
    def test_is_tex(self):
        """Only text .tex files are patch candidates."""
        assert SourceFile("ch/intro.tex", "x").is_tex
        assert not SourceFile("refs.bib", "x").is_tex
        assert not SourceFile("weird.tex", "AAAA", is_binary=True).is_tex

    @pytest.mark.unit
    def test_base64_payload(self):
        """Binary content arrives base64-encoded and is decoded for writing."""
        encoded = base64.b64encode(PNG_BYTES).decode("ascii")
        assert SourceFile("plot.png", encoded, is_binary=True).payload() == PNG_BYTES

    @pytest.mark.unit
    def test_invalid_base64_rejected(self):
        """Undecodable binary content is a caller error."""
        with pytest.raises(InvalidSourceFileError):
            SourceFile("plot.png", "abc", is_binary=True).payload()


class TestWorkspace:
    """Tests for workspace creation, writing and cleanup."""

    @pytest.mark.unit
    def test_create_uses_prefix_and_root(self, tmp_path):
        """Workspaces are uniquely named under the configured root."""
        first = Workspace.create("quire-tex-", str(tmp_path))
        second = Workspace.create("quire-tex-", str(tmp_path))

        assert first.root.parent == tmp_path.resolve()
        assert first.root.name.startswith("quire-tex-")
        assert first.root != second.root

    @pytest.mark.unit
    def test_write_files_preserves_structure(self, tmp_path):
        """Nested directories are created; text and binary content land intact."""
        workspace = Workspace.create("quire-project-", str(tmp_path))
        files = [
            SourceFile("main.tex", "\\input{chapters/ch1}"),
            SourceFile("chapters/ch1.tex", "Caf\u00e9"),
            SourceFile("figures/deep/plot.png", base64.b64encode(PNG_BYTES).decode(), is_binary=True),
            SourceFile("figures/raw.bin", PNG_BYTES, is_binary=True),
        ]

        written = workspace.write_files(files)

        assert written == workspace.files
        assert (workspace.root / "chapters" / "ch1.tex").read_text(encoding="utf-8") == "Caf\u00e9"
        assert (workspace.root / "figures" / "deep" / "plot.png").read_bytes() == PNG_BYTES
        assert (workspace.root / "figures" / "raw.bin").read_bytes() == PNG_BYTES

    @pytest.mark.unit
    def test_traversal_rejected_before_any_write(self, tmp_path):
        """One bad path aborts the whole batch before the first file is written."""
        workspace = Workspace.create("quire-project-", str(tmp_path / "work"))
        files = [SourceFile("main.tex", "ok"), SourceFile("../escaped.tex", "nope")]

        with pytest.raises(InvalidSourceFileError):
            workspace.write_files(files)

        assert list(workspace.root.iterdir()) == []
        assert not (tmp_path / "work" / "escaped.tex").exists()

    @pytest.mark.unit
    def test_open_workspace_removes_on_exception(self, tmp_path):
        """The scoped workspace is removed even when the body raises."""
        with pytest.raises(RuntimeError):
            with open_workspace("quire-tex-", str(tmp_path)) as workspace:
                workspace.write_file(SourceFile("main.tex", "x"))
                root = workspace.root
                raise RuntimeError("orchestration blew up")

        assert not root.exists()
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.unit
    def test_cleanup_failure_is_swallowed(self, tmp_path, monkeypatch):
        """Removal errors are logged, never raised."""

        def failing_rmtree(path):
            raise PermissionError("busy")

        monkeypatch.setattr(workspace_module.shutil, "rmtree", failing_rmtree)

        with open_workspace("quire-tex-", str(tmp_path)) as workspace:
            root = workspace.root

        assert root.exists()


class TestLoadProjectFiles:
    """Tests for reading a project directory from disk."""

    @pytest.mark.unit
    def test_detects_binary_files(self, tmp_path):
        """UTF-8 files load as text, everything else as raw-bytes binary."""
        (tmp_path / "chapters").mkdir()
        (tmp_path / "main.tex").write_text("\\documentclass{article}", encoding="utf-8")
        (tmp_path / "chapters" / "ch1.tex").write_text("Hello", encoding="utf-8")
        (tmp_path / "plot.png").write_bytes(PNG_BYTES)

        files = {f.path: f for f in load_project_files(tmp_path)}

        assert set(files) == {"main.tex", "chapters/ch1.tex", "plot.png"}
        assert files["chapters/ch1.tex"].content == "Hello"
        assert files["plot.png"].is_binary
        assert files["plot.png"].payload() == PNG_BYTES
