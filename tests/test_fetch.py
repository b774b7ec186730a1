import hashlib
import os
from unittest.mock import patch

import pytest
import requests

from lfslite.modules import utils
from lfslite.modules.errors import FetchError, IntegrityError
from lfslite.modules.fetch import fetch_sources

PAYLOAD = b"conteudo do tarball"
PAYLOAD_SHA = hashlib.sha256(PAYLOAD).hexdigest()


def _fake_download(url, dest, timeout=60):
    os.makedirs(os.path.dirname(dest), exist_ok=True)
    with open(dest, "wb") as f:
        f.write(PAYLOAD)
    return dest


def test_downloads_when_missing(make_ctx):
    ctx = make_ctx(source={"url": "https://example.com/hello-1.0.tar.gz", "sha256": PAYLOAD_SHA})
    with patch.object(utils, "download", side_effect=_fake_download) as mock_dl:
        path = fetch_sources(ctx)
    mock_dl.assert_called_once_with("https://example.com/hello-1.0.tar.gz", ctx.artifact)
    assert path == ctx.artifact
    assert os.path.isfile(path)


def test_existing_artifact_is_not_downloaded_again(make_ctx):
    ctx = make_ctx(source={"url": "https://example.com/hello-1.0.tar.gz", "sha256": PAYLOAD_SHA})
    _fake_download(None, ctx.artifact)
    with patch.object(utils, "download") as mock_dl:
        fetch_sources(ctx)
        fetch_sources(ctx)
    mock_dl.assert_not_called()


def test_checksum_mismatch_keeps_artifact(make_ctx):
    ctx = make_ctx(source={"url": "https://example.com/hello-1.0.tar.gz", "sha256": "0" * 64})
    with patch.object(utils, "download", side_effect=_fake_download):
        with pytest.raises(IntegrityError):
            fetch_sources(ctx)
    assert os.path.isfile(ctx.artifact)


def test_integrity_error_is_a_fetch_error():
    assert issubclass(IntegrityError, FetchError)


def test_no_checksum_does_not_abort(make_ctx):
    ctx = make_ctx()
    with patch.object(utils, "download", side_effect=_fake_download):
        assert fetch_sources(ctx) == ctx.artifact


def test_network_failure(make_ctx):
    ctx = make_ctx()
    with patch.object(utils, "download", side_effect=requests.ConnectionError("offline")):
        with pytest.raises(FetchError):
            fetch_sources(ctx)
    assert not os.path.exists(ctx.artifact)


def test_git_clone(make_ctx):
    ctx = make_ctx(source={"git": "https://git.example/hello.git"})
    with patch.object(utils, "run", return_value=(0, "")) as mock_run:
        assert fetch_sources(ctx) == ctx.worktree
    mock_run.assert_called_once_with(
        ["git", "clone", "--depth", "1", "https://git.example/hello.git", ctx.worktree],
        check=False,
    )


def test_git_existing_checkout_is_fast_forwarded(make_ctx):
    ctx = make_ctx(source={"git": "https://git.example/hello.git"})
    os.makedirs(os.path.join(ctx.worktree, ".git"))
    with patch.object(utils, "run", return_value=(0, "")) as mock_run:
        fetch_sources(ctx)
    mock_run.assert_called_once_with(["git", "-C", ctx.worktree, "pull", "--ff-only"], check=False)


def test_git_pull_not_fast_forward(make_ctx):
    ctx = make_ctx(source={"git": "https://git.example/hello.git"})
    os.makedirs(os.path.join(ctx.worktree, ".git"))
    with patch.object(utils, "run", return_value=(128, "fatal: Not possible to fast-forward")):
        with pytest.raises(FetchError):
            fetch_sources(ctx)


def test_git_clone_failure(make_ctx):
    ctx = make_ctx(source={"git": "https://git.example/hello.git"})
    with patch.object(utils, "run", return_value=(128, "")):
        with pytest.raises(FetchError):
            fetch_sources(ctx)


def test_git_destination_occupied(make_ctx):
    ctx = make_ctx(source={"git": "https://git.example/hello.git"})
    os.makedirs(ctx.worktree)
    open(os.path.join(ctx.worktree, "leftover"), "w").close()
    with patch.object(utils, "run") as mock_run:
        with pytest.raises(FetchError):
            fetch_sources(ctx)
    mock_run.assert_not_called()
