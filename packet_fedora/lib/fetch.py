from __future__ import annotations

import logging
from pathlib import Path

from ..errors import ChecksumError, CommandError, FetchError
from ..release import ImageRef
from .command import run_cmd

logger = logging.getLogger(__name__)


def download(image: ImageRef, work_dir: Path, *, verbose: bool = False) -> None:
    """Fetch the image and its manifest into work_dir.

    wget -N only transfers a file when the remote copy is newer than the
    local one, so re-running against a populated work_dir is cheap.
    """

    argv = ["wget", "-N"]
    if not verbose:
        argv.append("-q")
    argv += [image.url, image.checksum_url]

    try:
        run_cmd(argv, cwd=str(work_dir))
    except CommandError as e:
        raise FetchError(f"download failed for {image.filename}: {e}") from e


def find_checksum_line(manifest: Path, filename: str) -> str:
    """Return the manifest entry for filename.

    Fedora CHECKSUM files are clearsigned and carry comment lines; only
    entries in either BSD (``SHA256 (name) = ...``) or GNU (``hash  name``)
    form are considered.
    """

    for line in manifest.read_text(encoding="utf-8", errors="replace").splitlines():
        line = line.strip()
        if not line or line.startswith(("#", "-----", "Hash:")):
            continue
        if f"({filename})" in line or line.endswith(f" {filename}") or line.endswith(f"*{filename}"):
            return line
    raise ChecksumError(f"no checksum entry for {filename} in {manifest.name}")


def verify(image: ImageRef, work_dir: Path, *, verbose: bool = False) -> None:
    line = find_checksum_line(work_dir / image.checksum_filename, image.filename)

    argv = ["sha256sum", "-c"]
    if not verbose:
        argv.append("--quiet")
    argv.append("-")

    r = run_cmd(argv, cwd=str(work_dir), input_text=line + "\n", check=False)
    if r.returncode != 0:
        raise ChecksumError(f"checksum verification failed for {image.filename}")
    logger.info("Verified %s", image.filename)


def fetch_and_verify(image: ImageRef, work_dir: Path, *, verbose: bool = False) -> Path:
    """Download (if stale) and verify an image; returns the local image path."""

    work_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Fetching %s", image.url)
    download(image, work_dir, verbose=verbose)
    verify(image, work_dir, verbose=verbose)
    return work_dir / image.filename
