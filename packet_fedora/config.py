from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .errors import ConfigError
from .release import DEFAULT_MIRROR

CONFIG_ENV = "PACKET_FEDORA_CONFIG"
VERBOSE_ENV = "VERBOSE"

DEFAULT_LOG_NAME = "packet-fedora-images.log"


@dataclass(frozen=True)
class PrepConfig:
    raw: Dict[str, Any] = field(default_factory=dict)

    @property
    def mirror(self) -> str:
        return str(self.raw.get("mirror") or DEFAULT_MIRROR)

    @property
    def loop_device(self) -> str:
        return str(self.raw.get("loop_device") or "/dev/loop0")

    @property
    def volume_group(self) -> str:
        return str(((self.raw.get("lvm") or {}).get("volume_group")) or "fedora")

    @property
    def root_volume(self) -> str:
        return str(((self.raw.get("lvm") or {}).get("root_volume")) or "root")

    def log_path(self, work_dir: Path) -> str:
        return str(self.raw.get("log_path") or (work_dir / DEFAULT_LOG_NAME))


def load_config(path: Optional[str]) -> PrepConfig:
    """Load the optional YAML config; no path means all defaults."""

    if not path:
        return PrepConfig()

    p = Path(path)
    if not p.exists():
        raise ConfigError(f"config file not found: {path}")

    try:
        raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {path}: {e}") from e

    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping/object")

    lvm = raw.get("lvm")
    if lvm is not None and not isinstance(lvm, dict):
        raise ConfigError(f"{path}: lvm must be a mapping with volume_group/root_volume keys")

    return PrepConfig(raw=raw)


def env_verbose(environ: Optional[Mapping[str, str]] = None) -> bool:
    value = (environ if environ is not None else os.environ).get(VERBOSE_ENV, "")
    return value not in {"", "0"}
