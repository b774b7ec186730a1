import os

import pytest

from lfslite.modules.errors import InstallError, NotInstalledError


def test_write_and_read(registry):
    manifest = ["/usr", "/usr/bin", "/usr/bin/hello"]
    registry.write("hello", manifest, {"name": "hello", "version": "2.12"})

    assert registry.is_installed("hello")
    assert registry.read_manifest("hello") == manifest
    assert registry.read_meta("hello")["version"] == "2.12"
    assert not [f for f in os.listdir(registry.db_dir) if f.endswith(".tmp")]


def test_reinstall_overwrites(registry):
    registry.write("hello", ["/a", "/b"], {"name": "hello", "version": "1"})
    registry.write("hello", ["/c"], {"name": "hello", "version": "2"})
    assert registry.read_manifest("hello") == ["/c"]
    assert registry.read_meta("hello")["version"] == "2"


def test_absent_package(registry):
    assert not registry.is_installed("ghost")
    with pytest.raises(NotInstalledError):
        registry.read_manifest("ghost")
    with pytest.raises(NotInstalledError):
        registry.read_meta("ghost")


def test_delete(registry):
    registry.write("hello", ["/a"], {"name": "hello", "version": "1"})
    registry.delete("hello")
    assert not registry.is_installed("hello")
    assert not os.path.exists(registry.meta_path("hello"))


def test_list_installed(registry):
    assert registry.list_installed() == []
    registry.write("zlib", [], {"name": "zlib", "version": "1.3"})
    registry.write("bash", ["/bin/bash"], {"name": "bash", "version": "5.2"})
    os.remove(registry.meta_path("zlib"))

    assert registry.list_installed() == [
        {"name": "bash", "version": "5.2"},
        {"name": "zlib", "version": "?"},
    ]


def test_newline_entry_is_refused(registry):
    with pytest.raises(InstallError):
        registry.write("p", ["/usr/bin/x\n/etc/passwd"], {"name": "p", "version": "1"})
    assert not registry.is_installed("p")
    assert not os.path.exists(registry.meta_path("p"))


def test_undecodable_and_carriage_return_names_survive(registry):
    manifest = ["/usr/share", os.fsdecode(b"/usr/share/caf\xe9"), "/usr/share/a\rb"]
    registry.write("p", manifest, {"name": "p", "version": "1"})
    assert registry.read_manifest("p") == manifest
