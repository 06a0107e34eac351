from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Any, List, Optional, Sequence, Tuple

import pytest

from packet_fedora.errors import CommandError, PrivilegeError
from packet_fedora.lib.command import CmdResult

KERNEL = "vmlinuz-4.18.5-300.fc29.aarch64"
INITRD = "initramfs-4.18.5-300.fc29.aarch64.img"

TEARDOWN = {"detach_loop", "unmap_partitions", "umount", "deactivate_vg"}


class FakeHostOps:
    """Records every host operation and fakes its filesystem effects."""

    def __init__(
        self,
        *,
        fail_on: Optional[str] = None,
        broken_teardown: bool = False,
        privileged: bool = True,
        boot_files: Sequence[str] = (KERNEL, INITRD, "vmlinuz-0-rescue-abc"),
    ):
        self.calls: List[Tuple[Any, ...]] = []
        self.fail_on = fail_on
        self.broken_teardown = broken_teardown
        self.privileged = privileged
        self.boot_files = list(boot_files)

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, *args))
        if name == self.fail_on:
            raise CommandError([name], 1, "injected failure")

    def _teardown(self, name: str, *args: Any) -> bool:
        self.calls.append((name, *args))
        if self.broken_teardown:
            raise CommandError([name], 32, "teardown failure")
        return True

    def names(self) -> List[str]:
        return [c[0] for c in self.calls]

    def teardown_calls(self) -> List[Tuple[Any, ...]]:
        return [c for c in self.calls if c[0] in TEARDOWN]

    def check_privileges(self) -> None:
        self._record("check_privileges")
        if not self.privileged:
            raise PrivilegeError("passwordless sudo is required (sudo -n true failed)")

    def decompress(self, src: str, dst: str) -> None:
        self._record("decompress", src, dst)
        Path(dst).write_bytes(b"raw disk")

    def attach_loop(self, loop_device: str, image: str) -> None:
        self._record("attach_loop", loop_device, image)

    def detach_loop(self, loop_device: str) -> bool:
        return self._teardown("detach_loop", loop_device)

    def inspect_partitions(self, loop_device: str) -> None:
        self._record("inspect_partitions", loop_device)

    def map_partitions(self, loop_device: str) -> None:
        self._record("map_partitions", loop_device)

    def unmap_partitions(self, loop_device: str) -> bool:
        return self._teardown("unmap_partitions", loop_device)

    def mount_ro(self, device: str, mountpoint: str) -> None:
        self._record("mount_ro", device, mountpoint)
        mp = Path(mountpoint)
        if device.endswith("p2"):
            for name in self.boot_files:
                (mp / name).write_bytes(name.encode())
        else:
            mods = mp / "lib" / "modules" / "4.18.5-300.fc29.aarch64"
            mods.mkdir(parents=True, exist_ok=True)
            (mods / "modules.dep").write_text("")
            (mp / "etc").mkdir(exist_ok=True)

    def umount(self, mountpoint: str) -> bool:
        return self._teardown("umount", mountpoint)

    def activate_vg(self, volume_group: str) -> None:
        self._record("activate_vg", volume_group)

    def deactivate_vg(self, volume_group: str) -> bool:
        return self._teardown("deactivate_vg", volume_group)

    def copy(self, src: str, dst: str) -> None:
        self._record("copy", src, dst)
        s = Path(src)
        if s.is_dir():
            shutil.copytree(s, Path(dst) / s.name)
        else:
            shutil.copy(s, dst)

    def chown(self, path: str, *, recursive: bool = False) -> None:
        self._record("chown", path, recursive)

    def remove_tree(self, path: str) -> None:
        self._record("remove_tree", path)
        shutil.rmtree(path)

    def archive(self, dest, directory, members, *, privileged=False, preserve=False) -> None:
        self._record("archive", dest, directory, list(members), privileged, preserve)
        for m in members:
            assert (Path(directory) / m).exists(), f"{m} missing from {directory}"
        Path(dest).write_bytes(b"tar.gz")


@pytest.fixture
def fake_ops() -> FakeHostOps:
    return FakeHostOps()


@pytest.fixture(autouse=True)
def reset_logging():
    root = logging.getLogger()
    saved_handlers = root.handlers[:]
    saved_level = root.level
    yield
    for h in root.handlers[:]:
        if h not in saved_handlers:
            root.removeHandler(h)
            h.close()
    root.setLevel(saved_level)


class FakeFetcher:
    """Stands in for run_cmd inside packet_fedora.lib.fetch.

    wget is emulated with -N semantics: a file already present in the work
    directory is not written again.
    """

    def __init__(self, *, missing_entry: bool = False, bad_hash: bool = False, fail_download: bool = False):
        self.missing_entry = missing_entry
        self.bad_hash = bad_hash
        self.fail_download = fail_download
        self.calls: List[List[str]] = []
        self.downloads: List[str] = []
        self.verified: List[str] = []

    def __call__(self, argv, *, check=True, env=None, cwd=None, input_text=None):
        argv = list(argv)
        self.calls.append(argv)
        if argv[0] == "wget":
            if self.fail_download:
                raise CommandError(argv, 8, "404 Not Found")
            image_url, checksum_url = argv[-2], argv[-1]
            image_name = image_url.rsplit("/", 1)[1]
            checksum_name = checksum_url.rsplit("/", 1)[1]
            image = Path(cwd) / image_name
            if not image.exists():
                image.write_bytes(b"image")
                self.downloads.append(image_name)
            manifest = Path(cwd) / checksum_name
            if not manifest.exists():
                entry = "other-file.raw.xz" if self.missing_entry else image_name
                manifest.write_text(
                    "-----BEGIN PGP SIGNED MESSAGE-----\n"
                    "Hash: SHA256\n\n"
                    f"# {entry}: 1234 bytes\n"
                    f"SHA256 ({entry}) = {'ab' * 32}\n"
                )
                self.downloads.append(checksum_name)
            return CmdResult(argv=argv, returncode=0, stdout="", stderr="")
        if argv[0] == "sha256sum":
            self.verified.append(input_text)
            rc = 1 if self.bad_hash else 0
            return CmdResult(argv=argv, returncode=rc, stdout="", stderr="")
        raise AssertionError(f"unexpected command {argv}")

    def wget_calls(self) -> List[List[str]]:
        return [c for c in self.calls if c[0] == "wget"]


@pytest.fixture
def fake_fetch(monkeypatch) -> FakeFetcher:
    fetcher = FakeFetcher()
    monkeypatch.setattr("packet_fedora.lib.fetch.run_cmd", fetcher)
    return fetcher
