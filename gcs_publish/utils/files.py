"""
Input file records, object key normalization and content hashing.

An InputFile is what the upstream build step hands to the publisher: the
absolute path of a file, the base directory it was collected from, and its
buffered contents. The object key is derived from the two paths.

Example usage:
    >>> from gcs_publish.utils.files import InputFile, normalized_path, md5_hash
    >>> f = InputFile(path="/build/dist/CSS/App.css", base="/build/dist", contents=b"body{}")
    >>> normalized_path(f)
    'css/app.css'
    >>> len(md5_hash(f.contents))
    24
"""

import base64
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, Optional, Sequence, Union

from gcs_publish.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_PATTERNS = ("**/*",)


@dataclass
class InputFile:
    """
    A file produced by the upstream build step.

    Attributes:
        path: Absolute path of the file on disk
        base: Base directory the file was collected from
        contents: Buffered file contents (None for directories/placeholders)
        is_stream: True when contents are a live stream rather than bytes
    """

    path: str
    base: str
    contents: Optional[bytes] = field(default=None, repr=False)
    is_stream: bool = False

    def is_null(self) -> bool:
        """Return True when the record carries no contents."""
        return self.contents is None and not self.is_stream

    @property
    def key(self) -> str:
        """Bucket-relative object key for this file."""
        return normalized_path(self)


def normalized_path(file: InputFile, strip_leading_slash: bool = True) -> str:
    """
    Derive the object key of a file from its path and base directory.

    The base prefix is removed, the result lower-cased and, by default, a
    single leading "/" stripped. A path equal to its base yields "".

    Args:
        file: Input file record
        strip_leading_slash: Strip one leading "/" (default: True)

    Returns:
        Bucket-relative object key
    """
    path = file.path.replace(file.base, "", 1).lower()

    if strip_leading_slash and path.startswith("/"):
        return path[1:]
    return path


def md5_hash(contents: bytes) -> str:
    """
    Base64-encoded MD5 digest, the same form GCS stores in ``md5Hash``.

    Args:
        contents: Buffered file contents

    Returns:
        Base64 MD5 digest string
    """
    digest = hashlib.md5(contents).digest()
    return base64.b64encode(digest).decode("ascii")


def collect_files(
    base_dir: Union[str, Path],
    patterns: Optional[Sequence[str]] = None,
) -> Iterator[InputFile]:
    """
    Yield InputFile records for every regular file under base_dir.

    Files matching more than one pattern are yielded once. Contents are read
    lazily, one file per iteration step.

    Args:
        base_dir: Directory to collect from
        patterns: Glob patterns relative to base_dir (default: all files)

    Raises:
        FileNotFoundError: If base_dir does not exist
        NotADirectoryError: If base_dir is not a directory
    """
    base = Path(base_dir).resolve()
    if not base.exists():
        raise FileNotFoundError(f"Base directory not found: {base_dir}")
    if not base.is_dir():
        raise NotADirectoryError(f"Base path is not a directory: {base_dir}")

    seen = set()
    for path in _matching_paths(base, patterns or DEFAULT_PATTERNS):
        if path in seen or not path.is_file():
            continue
        seen.add(path)
        yield InputFile(
            path=path.as_posix(),
            base=base.as_posix(),
            contents=path.read_bytes(),
        )

    logger.debug(f"Collected {len(seen)} file(s) from {base}")


def _matching_paths(base: Path, patterns: Iterable[str]) -> Iterator[Path]:
    for pattern in patterns:
        yield from sorted(base.glob(pattern))
