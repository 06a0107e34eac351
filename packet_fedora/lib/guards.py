from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Callable, Iterator

from .hostops import HostOps

logger = logging.getLogger(__name__)


def _release(what: str, fn: Callable[[str], bool], arg: str) -> None:
    # Teardown must keep going so that every acquired resource gets a chance
    # to be released.
    try:
        if fn(arg):
            logger.info("Released %s %s", what, arg)
    except Exception:
        logger.warning("Failed to release %s %s", what, arg, exc_info=True)


@contextmanager
def attached_loop(ops: HostOps, loop_device: str, image: str) -> Iterator[str]:
    ops.attach_loop(loop_device, image)
    logger.info("Attached %s to %s", image, loop_device)
    try:
        yield loop_device
    finally:
        _release("loop device", ops.detach_loop, loop_device)


@contextmanager
def mapped_partitions(ops: HostOps, loop_device: str) -> Iterator[str]:
    ops.map_partitions(loop_device)
    try:
        yield loop_device
    finally:
        _release("partition mappings of", ops.unmap_partitions, loop_device)


@contextmanager
def mounted_ro(ops: HostOps, device: str, mountpoint: str) -> Iterator[str]:
    ops.mount_ro(device, mountpoint)
    logger.info("Mounted %s at %s (ro)", device, mountpoint)
    try:
        yield mountpoint
    finally:
        _release("mount", ops.umount, mountpoint)


@contextmanager
def active_vg(ops: HostOps, volume_group: str) -> Iterator[str]:
    ops.activate_vg(volume_group)
    try:
        yield volume_group
    finally:
        _release("volume group", ops.deactivate_vg, volume_group)
