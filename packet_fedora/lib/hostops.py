from __future__ import annotations

import logging
import os
from typing import Protocol, Sequence

from ..errors import PrivilegeError
from .command import CmdResult, run_cmd, run_stream

logger = logging.getLogger(__name__)


def partition_node(loop_device: str, number: int) -> str:
    """Device-mapper node kpartx creates for a loop device partition."""

    return f"/dev/mapper/{os.path.basename(loop_device)}p{number}"


def lv_node(volume_group: str, volume: str) -> str:
    return f"/dev/{volume_group}/{volume}"


class HostOps(Protocol):
    """Everything the server image extraction needs from the host.

    Acquire operations raise on failure. Release operations (detach, unmap,
    umount, deactivate) never raise; they return False when the command
    failed so later teardown can still run.
    """

    def check_privileges(self) -> None:
        ...

    def decompress(self, src: str, dst: str) -> None:
        ...

    def attach_loop(self, loop_device: str, image: str) -> None:
        ...

    def detach_loop(self, loop_device: str) -> bool:
        ...

    def inspect_partitions(self, loop_device: str) -> None:
        ...

    def map_partitions(self, loop_device: str) -> None:
        ...

    def unmap_partitions(self, loop_device: str) -> bool:
        ...

    def mount_ro(self, device: str, mountpoint: str) -> None:
        ...

    def umount(self, mountpoint: str) -> bool:
        ...

    def activate_vg(self, volume_group: str) -> None:
        ...

    def deactivate_vg(self, volume_group: str) -> bool:
        ...

    def copy(self, src: str, dst: str) -> None:
        ...

    def chown(self, path: str, *, recursive: bool = False) -> None:
        ...

    def remove_tree(self, path: str) -> None:
        ...

    def archive(
        self,
        dest: str,
        directory: str,
        members: Sequence[str],
        *,
        privileged: bool = False,
        preserve: bool = False,
    ) -> None:
        ...


class SudoHostOps:
    """HostOps backed by real tools, using passwordless sudo where needed."""

    def __init__(self, *, uid: int | None = None, gid: int | None = None):
        self.uid = os.getuid() if uid is None else uid
        self.gid = os.getgid() if gid is None else gid

    def _sudo(self, argv: Sequence[str], *, check: bool = True) -> CmdResult:
        return run_cmd(["sudo", "-n", *argv], check=check)

    def _release(self, argv: Sequence[str]) -> bool:
        r = self._sudo(argv, check=False)
        if not r.ok:
            logger.warning("Teardown command failed (%s): %s", r.returncode, " ".join(argv))
        return r.ok

    def check_privileges(self) -> None:
        r = run_cmd(["sudo", "-n", "true"], check=False)
        if not r.ok:
            raise PrivilegeError("passwordless sudo is required (sudo -n true failed)")

    def decompress(self, src: str, dst: str) -> None:
        run_stream(["xz", "-dc"], stdin_path=src, stdout_path=dst)

    def attach_loop(self, loop_device: str, image: str) -> None:
        self._sudo(["losetup", loop_device, image])

    def detach_loop(self, loop_device: str) -> bool:
        return self._release(["losetup", "-d", loop_device])

    def inspect_partitions(self, loop_device: str) -> None:
        r = self._sudo(["fdisk", "-l", loop_device], check=False)
        for line in (r.stdout or "").splitlines():
            logger.info("fdisk: %s", line)

    def map_partitions(self, loop_device: str) -> None:
        self._sudo(["kpartx", "-a", "-s", "-r", loop_device])

    def unmap_partitions(self, loop_device: str) -> bool:
        return self._release(["kpartx", "-d", loop_device])

    def mount_ro(self, device: str, mountpoint: str) -> None:
        self._sudo(["mount", "-o", "ro", device, mountpoint])

    def umount(self, mountpoint: str) -> bool:
        return self._release(["umount", mountpoint])

    def activate_vg(self, volume_group: str) -> None:
        self._sudo(["vgchange", "-a", "y", volume_group])

    def deactivate_vg(self, volume_group: str) -> bool:
        return self._release(["vgchange", "-a", "n", volume_group])

    def copy(self, src: str, dst: str) -> None:
        self._sudo(["cp", "-a", src, dst])

    def remove_tree(self, path: str) -> None:
        self._sudo(["rm", "-rf", "--one-file-system", path])

    def chown(self, path: str, *, recursive: bool = False) -> None:
        argv = ["chown"]
        if recursive:
            argv.append("-R")
        argv += [f"{self.uid}:{self.gid}", path]
        self._sudo(argv)

    def archive(
        self,
        dest: str,
        directory: str,
        members: Sequence[str],
        *,
        privileged: bool = False,
        preserve: bool = False,
    ) -> None:
        argv = ["tar"]
        if preserve:
            argv += ["--numeric-owner", "--xattrs", "--acls", "-czpf"]
        else:
            argv.append("-czf")
        argv += [dest, "-C", directory, *members]
        if privileged:
            self._sudo(argv)
        else:
            run_cmd(argv)
