"""File handler module: path validation, encoding-aware read/write, file naming.

Provides the file I/O infrastructure behind the file-backed editing
environment.  All functions are synchronous; callers on the event loop
go through run_sync().
"""

import re
from pathlib import Path

from charset_normalizer import from_bytes

MARKDOWN_SUFFIX = ".md"

# Characters that are invalid in file names on at least one common platform
_UNSAFE_FILENAME = re.compile(r'[\\/:*?"<>|\x00-\x1f]')

# =============================================================================
# Path Validation
# =============================================================================


def validate_file_path(path_str: str) -> Path:
    """Validate and resolve an input file path.

    Args:
        path_str: Absolute path string to an existing file.

    Returns:
        Resolved Path object pointing to the real file.

    Raises:
        ValueError: If path is relative, doesn't exist, or is not a file.
    """
    path = Path(path_str)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {path_str}")
    resolved = path.resolve()
    if not resolved.exists():
        raise ValueError(f"File not found: {path_str}")
    if not resolved.is_file():
        raise ValueError(f"Path is not a file: {path_str}")
    return resolved


def validate_directory(path_str: str) -> Path:
    """Validate and resolve an existing output directory.

    Raises:
        ValueError: If path is relative, doesn't exist, or is not a directory.
    """
    path = Path(path_str)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {path_str}")
    resolved = path.resolve()
    if not resolved.is_dir():
        raise ValueError(f"Directory not found: {path_str}")
    return resolved


def validate_output_path(
    path_str: str, base_dir: str | None = None
) -> Path:
    """Validate an output file path (file need not exist, but parent must).

    Args:
        path_str: Absolute path string for the output file.
        base_dir: Optional base directory; output must be under this directory.

    Returns:
        Resolved Path object for the output file.

    Raises:
        ValueError: If path is relative, parent doesn't exist, or path is outside base_dir.
    """
    path = Path(path_str)
    if not path.is_absolute():
        raise ValueError(f"Path must be absolute: {path_str}")
    resolved = path.resolve()
    if not resolved.parent.exists():
        raise ValueError(
            f"Output parent directory not found: {resolved.parent}"
        )
    if base_dir is not None:
        base_resolved = Path(base_dir).resolve()
        if not resolved.is_relative_to(base_resolved):
            raise ValueError(
                f"Output path is outside base directory: {resolved} not under {base_resolved}"
            )
    return resolved


# =============================================================================
# File Naming
# =============================================================================


def safe_filename(title: str, fallback: str = "untitled") -> str:
    """Turn a post title into a file name stem.

    Path separators and other characters that are invalid in file names
    are replaced with ``-``; surrounding dots and spaces are removed.
    """
    stem = _UNSAFE_FILENAME.sub("-", title).strip(" .")
    return stem or fallback


def unique_path(
    directory: Path, stem: str, suffix: str = MARKDOWN_SUFFIX
) -> Path:
    """Return ``directory/stem+suffix``, numbered if that name is taken.

    ``Post.md`` is tried first, then ``Post 1.md``, ``Post 2.md``...
    """
    candidate = directory / f"{stem}{suffix}"
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem} {counter}{suffix}"
        counter += 1
    return candidate


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8; non-ascii text written back
        # later must not fail to encode
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write content to a file, creating parent directories as needed.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)
