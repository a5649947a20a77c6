"""Shared fixtures."""

import os

import pytest


@pytest.fixture
def source_dir(tmp_path):
    """Source tree with three files totalling 15 bytes."""
    source = tmp_path / "source"
    (source / "sub").mkdir(parents=True)
    (source / "a.txt").write_text("hello")
    (source / "b.txt").write_text("world")
    (source / "sub" / "c.txt").write_text("again")
    return source


@pytest.fixture
def empty_source(tmp_path):
    source = tmp_path / "empty"
    source.mkdir()
    return source


@pytest.fixture
def mount_root(tmp_path):
    root = tmp_path / "mnt"
    root.mkdir()
    return root


@pytest.fixture
def credentials_file(tmp_path):
    path = tmp_path / "smbcredentials"
    path.write_text("username=anders\npassword=secret\ndomain=WORKGROUP\n")
    os.chmod(path, 0o600)
    return path


