"""
File discovery for uploads.
Turns a user-supplied file or directory path into a flat list of file
descriptors, walking directories recursively.
"""

import os
import errno
import logging
from typing import List, Optional, Tuple

from shared.models import FileDescriptor
from shared.exceptions import PathAccessError, TraversalError

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> Tuple[str, bool]:
    """
    Clean a path and resolve symlinks where possible.

    Returns:
        (normalized_path, fell_back). ``fell_back`` is True when resolution
        failed and the cleaned literal path is returned instead.
    """
    cleaned = os.path.normpath(os.path.expanduser(path.strip()))
    try:
        return os.path.realpath(cleaned, strict=True), False
    except (OSError, RuntimeError) as e:
        logger.warning("Could not resolve %s (%s); using the literal path", cleaned, e)
        return cleaned, True


def is_directory_input(path: str) -> bool:
    return os.path.isdir(path)


def summarize(descriptors: List[FileDescriptor]) -> Tuple[int, int]:
    """Count and total byte size of a descriptor list."""
    return len(descriptors), sum(d.size for d in descriptors)


class FileEnumerator:
    """Walks a path into transferable file descriptors."""

    def __init__(self):
        self.last_fallback: Optional[str] = None

    def enumerate(self, path: str) -> List[FileDescriptor]:
        """
        List every file under ``path`` (or ``path`` itself if it is a file).

        Raises:
            PathAccessError: the path cannot be statted, or a found file
                disappeared before the walk finished
            TraversalError: an entry inside the tree could not be read
        """
        root, fell_back = normalize_path(path)
        self.last_fallback = root if fell_back else None

        try:
            st = os.stat(root)
        except OSError as e:
            raise PathAccessError(root, e) from e

        if os.path.isdir(root):
            files = self._walk(root)
        else:
            files = [FileDescriptor(absolute_path=os.path.abspath(root), size=st.st_size)]

        # Files deleted mid-walk fail the whole enumeration
        for descriptor in files:
            try:
                os.stat(descriptor.absolute_path)
            except OSError as e:
                raise PathAccessError(descriptor.absolute_path, e) from e

        logger.debug("Enumerated %d file(s) under %s", len(files), root)
        return files

    def _walk(self, root: str) -> List[FileDescriptor]:
        files = []
        visited = set()

        def on_error(err: OSError):
            raise TraversalError(err.filename or root, err) from err

        # Symlinked directories are walked under the link's own path
        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error, followlinks=True):
            real = os.path.realpath(dirpath)
            if real in visited:
                loop = OSError(errno.ELOOP, "directory reached twice through a symlink", dirpath)
                raise TraversalError(dirpath, loop)
            visited.add(real)
            for dirname in dirnames:
                if os.path.islink(os.path.join(dirpath, dirname)):
                    logger.debug("Following directory symlink %s", os.path.join(dirpath, dirname))
            for filename in filenames:
                file_path = os.path.abspath(os.path.join(dirpath, filename))
                try:
                    st = os.lstat(file_path)
                except OSError as e:
                    raise TraversalError(file_path, e) from e
                files.append(FileDescriptor(absolute_path=file_path, size=self._size_of(file_path, st)))
        return files

    @staticmethod
    def _size_of(file_path: str, st: os.stat_result) -> int:
        # Symlinked files report the target's size
        if os.path.islink(file_path):
            try:
                return os.stat(file_path).st_size
            except OSError as e:
                raise TraversalError(file_path, e) from e
        return st.st_size
