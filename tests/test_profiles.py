import json
import os
import stat

import pytest

from shared.exceptions import ProfileError
from shared.models import CloudflareCredentials
from r2_uploader.profiles import ProfileManager


@pytest.fixture
def profiles_path(tmp_path):
    return tmp_path / ".r2uploader" / "profiles.json"


def test_missing_file_means_no_profiles(profiles_path):
    manager = ProfileManager(profiles_path)
    assert manager.list() == []
    assert profiles_path.parent.is_dir()


def test_add_persists_with_owner_only_permissions(profiles_path, credentials):
    ProfileManager(profiles_path).add("work", credentials)

    reloaded = ProfileManager(profiles_path)
    assert reloaded.names() == ["work"]
    assert reloaded.get("work").credentials == credentials
    if os.name == "posix":
        assert stat.S_IMODE(profiles_path.stat().st_mode) == 0o600
        assert stat.S_IMODE(profiles_path.parent.stat().st_mode) == 0o700


def test_file_format_is_a_json_array(profiles_path, credentials):
    ProfileManager(profiles_path).add("work", credentials)

    data = json.loads(profiles_path.read_text())
    assert data == [{
        "Name": "work",
        "Credentials": {
            "APIToken": "",
            "AccessKey": "AKIDEXAMPLE",
            "SecretKey": "wJalrXUtnFEMI/K7MDENG+bPxRfiCYEXAMPLEKEY",
            "AccountID": "0123456789abcdef",
            "BucketName": "uploads",
        },
    }]


def test_duplicate_name_is_rejected(profiles_path, credentials):
    manager = ProfileManager(profiles_path)
    manager.add("work", credentials)
    with pytest.raises(ProfileError):
        manager.add("work", credentials)


def test_remove_and_get_unknown(profiles_path, credentials):
    manager = ProfileManager(profiles_path)
    manager.add("a", credentials)
    manager.add("b", CloudflareCredentials("acct", "k", "s", "other"))

    manager.remove("a")

    assert ProfileManager(profiles_path).names() == ["b"]
    with pytest.raises(ProfileError):
        manager.get("a")


def test_corrupt_file_raises(profiles_path):
    profiles_path.parent.mkdir(parents=True)
    profiles_path.write_text("{not json")
    with pytest.raises(ProfileError):
        ProfileManager(profiles_path)


def test_null_file_is_empty(profiles_path):
    profiles_path.parent.mkdir(parents=True)
    profiles_path.write_text("null")
    assert ProfileManager(profiles_path).list() == []
