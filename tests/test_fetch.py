from __future__ import annotations

import pytest

from packet_fedora.errors import ChecksumError, FetchError
from packet_fedora.lib.fetch import fetch_and_verify, find_checksum_line
from packet_fedora.release import resolve_release, server_image

from .conftest import FakeFetcher


@pytest.fixture
def image():
    return server_image(resolve_release("28"), "aarch64")


def test_fetch_downloads_image_and_manifest_quietly(tmp_path, fake_fetch, image):
    path = fetch_and_verify(image, tmp_path)

    assert path == tmp_path / image.filename
    assert fake_fetch.wget_calls() == [["wget", "-N", "-q", image.url, image.checksum_url]]
    sha = [c for c in fake_fetch.calls if c[0] == "sha256sum"]
    assert sha == [["sha256sum", "-c", "--quiet", "-"]]
    assert fake_fetch.verified == [f"SHA256 ({image.filename}) = {'ab' * 32}\n"]


def test_verbose_drops_quiet_flags(tmp_path, fake_fetch, image):
    fetch_and_verify(image, tmp_path, verbose=True)

    assert "-q" not in fake_fetch.wget_calls()[0]
    assert ["sha256sum", "-c", "-"] in fake_fetch.calls


def test_refetch_skips_download_but_reverifies(tmp_path, fake_fetch, image):
    fetch_and_verify(image, tmp_path)
    fetch_and_verify(image, tmp_path)

    assert fake_fetch.downloads == [image.filename, image.checksum_filename]
    assert len(fake_fetch.wget_calls()) == 2
    assert all("-N" in c for c in fake_fetch.wget_calls())
    assert len(fake_fetch.verified) == 2


def test_missing_manifest_entry_fails_before_hashing(tmp_path, monkeypatch, image):
    fetcher = FakeFetcher(missing_entry=True)
    monkeypatch.setattr("packet_fedora.lib.fetch.run_cmd", fetcher)

    with pytest.raises(ChecksumError, match="no checksum entry"):
        fetch_and_verify(image, tmp_path)
    assert fetcher.verified == []


def test_hash_mismatch_is_checksum_error(tmp_path, monkeypatch, image):
    monkeypatch.setattr("packet_fedora.lib.fetch.run_cmd", FakeFetcher(bad_hash=True))

    with pytest.raises(ChecksumError, match="verification failed"):
        fetch_and_verify(image, tmp_path)


def test_download_failure_is_fetch_error(tmp_path, monkeypatch, image):
    monkeypatch.setattr("packet_fedora.lib.fetch.run_cmd", FakeFetcher(fail_download=True))

    with pytest.raises(FetchError, match=image.filename):
        fetch_and_verify(image, tmp_path)


def test_find_checksum_line_accepts_gnu_format(tmp_path):
    manifest = tmp_path / "CHECKSUM"
    manifest.write_text(
        "# Fedora-Server-28-1.1.aarch64.raw.xz: 100 bytes\n"
        "cafe  Fedora-Server-28-1.1.aarch64.iso\n"
        "beef  Fedora-Server-28-1.1.aarch64.raw.xz\n"
    )
    assert find_checksum_line(manifest, "Fedora-Server-28-1.1.aarch64.raw.xz") == (
        "beef  Fedora-Server-28-1.1.aarch64.raw.xz"
    )
