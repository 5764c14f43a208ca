"""
Destination key derivation.

Keys are built from the file's base name with URL-troublesome characters
replaced, optionally prefixed with the name of the directory the user asked
to upload. Nested subdirectories are flattened unless ``preserve_structure``
is enabled, so two files with the same name in different subdirectories of
one tree map to the same key in the default mode.
"""

import os
from typing import Optional

from shared.constants import UNSAFE_KEY_CHARACTERS, KEY_REPLACEMENT_CHARACTER

_TRANSLATION = str.maketrans({c: KEY_REPLACEMENT_CHARACTER for c in UNSAFE_KEY_CHARACTERS})


def sanitize_name(name: str) -> str:
    """Replace ``[ ] ( )`` and spaces with underscores."""
    return name.translate(_TRANSLATION)


def base_directory_for(path: str) -> Optional[str]:
    """Basename of ``path`` when it is a directory, otherwise None."""
    if not os.path.isdir(path):
        return None
    name = os.path.basename(os.path.normpath(path))
    if name in ("", ".", ".."):
        return None
    return name


class KeyResolver:
    """
    Maps local file paths to object keys for one upload batch.

    Args:
        base_directory: Name of the uploaded directory, or None for a single file
        preserve_structure: Keep the relative path below ``root`` instead of
            flattening to the base name
        root: Absolute path of the uploaded directory; required with
            ``preserve_structure``
    """

    def __init__(self, base_directory: Optional[str] = None,
                 preserve_structure: bool = False, root: Optional[str] = None):
        if preserve_structure and not root:
            raise ValueError("preserve_structure requires the root directory")
        self.base_directory = base_directory or None
        self.preserve_structure = preserve_structure
        self.root = root

    def resolve(self, file_path: str) -> str:
        if self.preserve_structure and self.base_directory:
            relative = os.path.relpath(file_path, self.root)
            segments = [sanitize_name(s) for s in relative.split(os.sep) if s not in ("", ".")]
            name = "/".join(segments)
        else:
            name = sanitize_name(os.path.basename(file_path))

        if not self.base_directory:
            return name
        key = os.path.join(self.base_directory, name)
        return key.replace("\\", "/")
