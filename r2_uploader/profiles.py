"""
Named credential profiles stored as a JSON array under the user's home.
"""

import json
import os
from pathlib import Path
from typing import List, Optional

from shared.constants import (
    DEFAULT_CONFIG_DIR,
    PROFILES_FILENAME,
    CONFIG_DIR_MODE,
    PROFILES_FILE_MODE,
)
from shared.exceptions import ProfileError
from shared.models import CloudflareCredentials, Profile


def default_profiles_path() -> Path:
    return Path(DEFAULT_CONFIG_DIR).expanduser() / PROFILES_FILENAME


class ProfileManager:
    """
    Loads and saves credential profiles.

    The directory is created owner-only (0700) and the file is written
    owner-only (0600). A missing file simply means there are no profiles yet.
    """

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else default_profiles_path()
        self.profiles: List[Profile] = []
        try:
            self.path.parent.mkdir(mode=CONFIG_DIR_MODE, parents=True, exist_ok=True)
        except OSError as e:
            raise ProfileError(f"could not create config directory {self.path.parent}: {e}") from e
        self._load()

    def _load(self):
        if not self.path.exists():
            return
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ProfileError(f"corrupt profile file {self.path}: {e}") from e
        except OSError as e:
            raise ProfileError(f"could not read profile file {self.path}: {e}") from e

        if data is None:
            return
        if not isinstance(data, list):
            raise ProfileError(f"profile file {self.path} must hold a JSON array")
        self.profiles = [Profile.from_dict(entry) for entry in data]

    def save(self):
        payload = json.dumps([p.to_dict() for p in self.profiles], indent=2)
        try:
            fd = os.open(self.path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PROFILES_FILE_MODE)
            with os.fdopen(fd, 'w') as f:
                f.write(payload)
            # O_CREAT's mode is ignored for files that already existed
            os.chmod(self.path, PROFILES_FILE_MODE)
        except OSError as e:
            raise ProfileError(f"could not write profile file {self.path}: {e}") from e

    def list(self) -> List[Profile]:
        return list(self.profiles)

    def names(self) -> List[str]:
        return [p.name for p in self.profiles]

    def get(self, name: str) -> Profile:
        for profile in self.profiles:
            if profile.name == name:
                return profile
        raise ProfileError(f"profile '{name}' not found")

    def add(self, name: str, credentials: CloudflareCredentials) -> Profile:
        """Add a profile and persist the store. Names must be unique."""
        name = name.strip()
        if not name:
            raise ProfileError("profile name cannot be empty")
        if name in self.names():
            raise ProfileError(f"profile '{name}' already exists")
        profile = Profile(name=name, credentials=credentials)
        self.profiles.append(profile)
        self.save()
        return profile

    def remove(self, name: str) -> None:
        profile = self.get(name)
        self.profiles.remove(profile)
        self.save()
