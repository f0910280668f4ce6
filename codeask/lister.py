"""
Directory listing for codeask.

Walks a folder and returns FileRecord snapshots, honouring nested
.gitignore files.
"""

import datetime
import logging
from pathlib import Path
from typing import Optional
import pathspec

from .models import FileRecord

logger = logging.getLogger(__name__)


def load_nested_gitignore(root_path: Path) -> Optional[pathspec.PathSpec]:
    """
    Load and merge all .gitignore files in a directory tree.

    Patterns from a nested .gitignore are scoped to its directory.

    Args:
        root_path: Root directory to search for .gitignore files

    Returns:
        PathSpec with merged patterns, or None if no .gitignore files exist
    """
    all_patterns = []
    gitignore_files = sorted(p for p in root_path.rglob(".gitignore") if p.is_file())

    for gitignore_path in gitignore_files:
        try:
            patterns = gitignore_path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read {gitignore_path}: {e}")
            continue

        scope = gitignore_path.parent.relative_to(root_path).as_posix()
        for pattern in patterns:
            stripped = pattern.strip()
            if not stripped or stripped.startswith("#"):
                continue
            if scope == ".":
                all_patterns.append(stripped)
            elif stripped.startswith("!"):
                all_patterns.append(f"!{scope}/{stripped[1:].lstrip('/')}")
            else:
                all_patterns.append(f"{scope}/{stripped.lstrip('/')}")

    if not all_patterns:
        return None

    logger.debug(f"Loaded {len(all_patterns)} patterns from {len(gitignore_files)} .gitignore files")
    return pathspec.PathSpec.from_lines("gitwildmatch", all_patterns)


def file_record(path: Path) -> FileRecord:
    stats = path.stat()
    modified = datetime.datetime.fromtimestamp(stats.st_mtime, tz=datetime.timezone.utc)
    return FileRecord(
        name=path.name,
        path=str(path),
        is_directory=path.is_dir(),
        size=0 if path.is_dir() else stats.st_size,
        last_modified=modified.isoformat(),
    )


def list_dir(
    path: Path,
    recursive: bool = True,
    respect_gitignore: bool = True,
) -> list[FileRecord]:
    """
    List the entries of a folder as FileRecords.

    Args:
        path: Folder to list
        recursive: Descend into subdirectories (directories are then not returned)
        respect_gitignore: Skip entries matched by .gitignore files in the tree

    Returns:
        Records sorted by path

    Raises:
        OSError: If the folder itself cannot be read
    """
    root = Path(path).resolve()
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    spec = load_nested_gitignore(root) if respect_gitignore else None
    entries = root.rglob("*") if recursive else root.iterdir()

    records = []
    for entry in entries:
        if recursive and entry.is_dir():
            continue

        rel_path = entry.relative_to(root).as_posix()
        if spec and spec.match_file(rel_path):
            continue

        try:
            records.append(file_record(entry))
        except OSError as e:
            logger.warning(f"Cannot stat {entry}: {e}")

    records.sort(key=lambda r: r.path)
    logger.info(f"Listed {len(records)} entries under {root}")
    return records
