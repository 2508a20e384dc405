"""
Workspace Materializer

Allocates a uniquely named temporary directory per request and writes source files
into it, recreating subdirectories. Paths are validated before the first write so
nothing can land outside the workspace root.
"""

import base64
import binascii
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Dict, Iterator, List, Optional, Sequence, Union

from quire.contexts.rendering.exceptions import InvalidSourceFileError
from quire.contexts.rendering.logger import _log_debug, log_cleanup_failed


@dataclass
class SourceFile:
    """
    One file of a compilation request.

    Attributes:
        path: Workspace-relative path (e.g., "chapters/ch1.tex", "figures/plot.png")
        content: Text, or base64 text / raw bytes when is_binary is set
        is_binary: Whether content is a binary asset
    """

    path: str
    content: Union[str, bytes]
    is_binary: bool = False

    @classmethod
    def from_dict(cls, data: Dict) -> "SourceFile":
        """
        Build from the collaborator payload {path, content, isBinary}.

        Raises:
            InvalidSourceFileError: If path or content is missing
        """
        missing = [key for key in ("path", "content") if key not in data]
        if missing:
            raise InvalidSourceFileError(
                f"Source file entry is missing {', '.join(missing)}", path=data.get("path")
            )
        return cls(
            path=data["path"],
            content=data["content"],
            is_binary=bool(data.get("isBinary", data.get("is_binary", False))),
        )

    @property
    def is_tex(self) -> bool:
        """Text document-body file eligible for fallback patching."""
        return not self.is_binary and normalize_relative_path(self.path).endswith(".tex")

    def payload(self) -> Union[str, bytes]:
        """Content as it should be written: decoded bytes for binary files, text otherwise."""
        if not self.is_binary or isinstance(self.content, bytes):
            return self.content
        try:
            return base64.b64decode(self.content)
        except (binascii.Error, ValueError) as e:
            raise InvalidSourceFileError(
                f"Binary file is not valid base64: {self.path}", path=self.path
            ) from e


def normalize_relative_path(path: str) -> str:
    """
    Normalize a workspace-relative path to POSIX form, rejecting traversal.

    Backslashes become '/', empty and '.' segments are dropped.

    Raises:
        InvalidSourceFileError: For empty, absolute or drive-qualified paths,
            and for any '..' segment
    """
    if not isinstance(path, str) or not path.strip():
        raise InvalidSourceFileError("File path is empty.", path=path)

    candidate = path.replace("\\", "/")
    if candidate.startswith("/") or (len(candidate) > 1 and candidate[1] == ":"):
        raise InvalidSourceFileError(f"Absolute file paths are not allowed: {path}", path=path)

    parts = [part for part in PurePosixPath(candidate).parts if part not in ("", ".")]
    if not parts:
        raise InvalidSourceFileError(f"File path has no name: {path}", path=path)
    if ".." in parts:
        raise InvalidSourceFileError(f"Parent-directory segments are not allowed: {path}", path=path)

    return "/".join(parts)


def validate_source_files(files: Sequence[SourceFile]) -> None:
    """Check every path and binary payload up front, before any I/O."""
    for source_file in files:
        normalize_relative_path(source_file.path)
        if source_file.is_binary:
            source_file.payload()


@dataclass
class Workspace:
    """
    Ephemeral, exclusively-owned directory tree for one compilation.

    Attributes:
        root: Absolute workspace directory
        files: Absolute paths of files written so far
    """

    root: Path
    files: List[Path] = field(default_factory=list)

    @classmethod
    def create(cls, prefix: str, tmp_root: Optional[str] = None) -> "Workspace":
        """Make a fresh, uniquely named directory (mkdtemp)."""
        if tmp_root is not None:
            Path(tmp_root).mkdir(parents=True, exist_ok=True)
        root = Path(tempfile.mkdtemp(prefix=prefix, dir=tmp_root)).resolve()
        _log_debug(f"Created workspace {root}")
        return cls(root=root)

    def resolve(self, relative_path: str) -> Path:
        """Absolute path for a workspace-relative path, guaranteed inside root."""
        target = (self.root / normalize_relative_path(relative_path)).resolve()
        if target != self.root and self.root not in target.parents:
            raise InvalidSourceFileError(
                f"File path escapes the workspace: {relative_path}", path=relative_path
            )
        return target

    def write_file(self, source_file: SourceFile) -> Path:
        """Write one file, creating parent directories. Write errors propagate."""
        target = self.resolve(source_file.path)
        target.parent.mkdir(parents=True, exist_ok=True)

        payload = source_file.payload()
        if isinstance(payload, bytes):
            target.write_bytes(payload)
        else:
            target.write_text(payload, encoding="utf-8")

        self.files.append(target)
        return target

    def write_files(self, files: Sequence[SourceFile]) -> List[Path]:
        """Validate all paths, then write every file in order."""
        validate_source_files(files)
        return [self.write_file(source_file) for source_file in files]

    def cleanup(self) -> None:
        """Remove the workspace. Failures are logged, never raised."""
        try:
            shutil.rmtree(self.root)
            _log_debug(f"Removed workspace {self.root}")
        except FileNotFoundError:
            pass
        except OSError as e:
            log_cleanup_failed(self.root, e)


@contextmanager
def open_workspace(prefix: str, tmp_root: Optional[str] = None) -> Iterator[Workspace]:
    """
    Scoped workspace: created on entry, removed on every exit path.

    Example:
        with open_workspace("quire-tex-") as workspace:
            main = workspace.write_file(SourceFile("main.tex", source))
    """
    workspace = Workspace.create(prefix, tmp_root)
    try:
        yield workspace
    finally:
        workspace.cleanup()


def load_project_files(directory: Path) -> List[SourceFile]:
    """
    Read every file under a directory as SourceFiles (relative POSIX paths).

    Files that are not valid UTF-8 are loaded as binary with raw bytes content.
    """
    directory = Path(directory)
    files = []
    for file_path in sorted(p for p in directory.rglob("*") if p.is_file()):
        relative = file_path.relative_to(directory).as_posix()
        data = file_path.read_bytes()
        try:
            files.append(SourceFile(path=relative, content=data.decode("utf-8")))
        except UnicodeDecodeError:
            files.append(SourceFile(path=relative, content=data, is_binary=True))
    return files
