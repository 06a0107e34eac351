from __future__ import annotations

from types import MappingProxyType

from .errors import UnsupportedArchError

# Only 64-bit ARM server images are prepared.
ARCH_ALIASES = MappingProxyType(
    {
        "arm64": "aarch64",
        "aarch64": "aarch64",
    }
)


def normalize_arch(arch: str) -> str:
    """Return the canonical (Fedora) name for an architecture alias."""

    canonical = ARCH_ALIASES.get(arch)
    if canonical is None:
        raise UnsupportedArchError(arch, sorted(ARCH_ALIASES))
    return canonical
