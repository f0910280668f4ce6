"""
File eligibility rules for codeask.

Decides whether a file is worth embedding: no binaries or media, nothing
under build output, dependency caches or version-control directories, and
nothing above the size ceiling.
"""

import logging
from pathlib import PurePath
from typing import Iterable, Optional
import pathspec

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB

SKIP_EXTENSIONS = frozenset({
    # Images
    ".jpg", ".jpeg", ".png", ".gif", ".bmp", ".ico", ".svg", ".webp", ".tiff",
    # Audio
    ".mp3", ".wav", ".ogg", ".flac", ".aac", ".m4a",
    # Video
    ".mp4", ".avi", ".mov", ".wmv", ".flv", ".webm", ".mkv",
    # Archives
    ".zip", ".rar", ".tar", ".gz", ".7z", ".jar", ".war",
    # Binaries
    ".exe", ".dll", ".so", ".dylib", ".bin", ".dat",
    # Documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    # Fonts
    ".ttf", ".otf", ".woff", ".woff2",
    # Other
    ".lock", ".log", ".tmp", ".cache", ".bak",
    # Design files
    ".psd", ".ai", ".sketch", ".fig",
    # Database files
    ".db", ".sqlite", ".sqlite3",
})

# Gitignore-style patterns: a bare name matches that component at any depth
SKIP_PATTERNS = (
    "node_modules",
    "dist",
    "build",
    ".git",
    ".github",
    ".vscode",
    ".idea",
    "__pycache__",
    ".DS_Store",
    "coverage",
    "temp",
    "tmp",
    "vendor",
    "bower_components",
    "target",
    ".next",
    "out",
    ".codeask",
)


class FileClassifier:
    """
    Pure predicate over (path, size).

    Never raises: anything that cannot be classified is treated as
    "do not index".
    """

    def __init__(
        self,
        max_file_size: int = MAX_FILE_SIZE,
        extra_patterns: Optional[Iterable[str]] = None,
        skip_extensions: Iterable[str] = SKIP_EXTENSIONS,
    ):
        self.max_file_size = max_file_size
        self.skip_extensions = frozenset(ext.lower() for ext in skip_extensions)
        patterns = list(SKIP_PATTERNS) + list(extra_patterns or [])
        self._spec = pathspec.PathSpec.from_lines("gitwildmatch", patterns)

    def should_index(self, path: str, size: int) -> bool:
        """
        Check if a file should be indexed.

        Args:
            path: File path (absolute or relative)
            size: File size in bytes

        Returns:
            True if the file is eligible for indexing
        """
        try:
            pure = PurePath(path)
            if pure.suffix.lower() in self.skip_extensions:
                return False

            if size > self.max_file_size:
                logger.info(
                    f"Skipping large file: {path} "
                    f"({size / 1024 / 1024:.1f}MB > {self.max_file_size / 1024 / 1024:.1f}MB limit)"
                )
                return False

            return not self._spec.match_file(self._relative_form(pure))
        except Exception as e:
            logger.debug(f"Cannot classify {path!r}: {e}")
            return False

    @staticmethod
    def _relative_form(path: PurePath) -> str:
        """Drop the drive/root so patterns match from the first component."""
        parts = path.parts[1:] if path.anchor else path.parts
        return "/".join(parts)


_default_classifier = FileClassifier()


def should_index(path: str, size: int) -> bool:
    """Classify with the default rules (5MB ceiling, built-in denylists)."""
    return _default_classifier.should_index(path, size)
