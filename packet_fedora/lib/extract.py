from __future__ import annotations

import logging
import os
import re
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path

from ..errors import ExtractError
from ..release import Artifacts
from .guards import active_vg, attached_loop, mapped_partitions, mounted_ro
from .hostops import HostOps, lv_node, partition_node

logger = logging.getLogger(__name__)

BOOT_PARTITION = 2


@dataclass(frozen=True)
class ServerImageLayout:
    loop_device: str
    volume_group: str = "fedora"
    root_volume: str = "root"


def raw_image_path(image: Path, work_dir: Path) -> Path:
    name = image.name
    if name.endswith(".xz"):
        name = name[: -len(".xz")]
    return work_dir / name


def _version_key(path: Path) -> list:
    # 4.18.10 sorts after 4.18.5
    return [(int(part), "") if part.isdigit() else (-1, part) for part in re.split(r"(\d+)", path.name)]


def _newest(directory: Path, pattern: str) -> Path:
    matches = sorted(directory.glob(pattern), key=_version_key)
    if not matches:
        raise ExtractError(f"No file matching {pattern} in {directory}")
    return matches[-1]


def _archive_as(ops: HostOps, src: Path, canonical: str, dest: Path) -> None:
    """Archive src under a canonical member name via a temporary hard link."""

    link = src.parent / canonical
    if link.exists() or link.is_symlink():
        link.unlink()
    os.link(src, link)
    try:
        ops.archive(str(dest), str(src.parent), [canonical])
    finally:
        link.unlink()
    logger.info("Wrote %s", dest)


def _copy_boot_files(ops: HostOps, boot_mp: Path, work_dir: Path, arch: str) -> tuple[Path, Path]:
    kernel_src = _newest(boot_mp, f"vmlinuz-*.{arch}")
    initrd_src = _newest(boot_mp, f"initramfs-*.{arch}.img")

    copied = []
    for src in (kernel_src, initrd_src):
        dst = work_dir / src.name
        ops.copy(str(src), str(dst))
        ops.chown(str(dst))
        copied.append(dst)
    logger.info("Kernel %s, initrd %s", kernel_src.name, initrd_src.name)
    return copied[0], copied[1]


def _package_modules(ops: HostOps, root_mp: Path, work_dir: Path, dest: Path) -> None:
    staging = work_dir / "modules"
    if staging.exists():
        # A previous run may have died before handing the tree back.
        ops.remove_tree(str(staging))
    (staging / "lib").mkdir(parents=True)

    ops.copy(str(root_mp / "lib" / "modules"), str(staging / "lib"))
    ops.archive(str(dest), str(staging), ["lib"], privileged=True)
    ops.chown(str(dest))
    ops.chown(str(staging), recursive=True)
    logger.info("Wrote %s", dest)


def _package_rootfs(ops: HostOps, root_mp: Path, dest: Path) -> None:
    ops.archive(str(dest), str(root_mp), ["."], privileged=True, preserve=True)
    ops.chown(str(dest))
    logger.info("Wrote %s", dest)


def extract_server_image(
    *,
    ops: HostOps,
    image: Path,
    work_dir: Path,
    artifacts: Artifacts,
    layout: ServerImageLayout,
    verbose: bool = False,
) -> list[Path]:
    """Turn a compressed Fedora Server raw disk image into provisioning tarballs.

    The disk is expected to carry /boot on partition 2 and the root
    filesystem on an LVM logical volume. Loop device, partition mappings,
    volume group and mounts are released on every exit path, most recent
    first.
    """

    arch = artifacts.arch
    raw = raw_image_path(image, work_dir)
    boot_mp = work_dir / "boot"
    root_mp = work_dir / "root"
    boot_mp.mkdir(parents=True, exist_ok=True)
    root_mp.mkdir(parents=True, exist_ok=True)
    artifacts.outdir.mkdir(parents=True, exist_ok=True)

    logger.info("Decompressing %s -> %s", image.name, raw.name)
    ops.decompress(str(image), str(raw))

    with ExitStack() as stack:
        loop = stack.enter_context(attached_loop(ops, layout.loop_device, str(raw)))
        if verbose:
            ops.inspect_partitions(loop)
        stack.enter_context(mapped_partitions(ops, loop))

        with mounted_ro(ops, partition_node(loop, BOOT_PARTITION), str(boot_mp)):
            kernel, initrd = _copy_boot_files(ops, boot_mp, work_dir, arch)

        _archive_as(ops, kernel, "vmlinuz", artifacts.kernel)
        _archive_as(ops, initrd, "initramfs", artifacts.initrd)

        stack.enter_context(active_vg(ops, layout.volume_group))
        stack.enter_context(
            mounted_ro(ops, lv_node(layout.volume_group, layout.root_volume), str(root_mp))
        )

        _package_modules(ops, root_mp, work_dir, artifacts.modules)
        _package_rootfs(ops, root_mp, artifacts.rootfs)

    return artifacts.all()
