from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from .errors import UnsupportedVersionError

DEFAULT_MIRROR = "https://dl.fedoraproject.org/pub/fedora/linux"


@dataclass(frozen=True)
class ReleaseDescriptor:
    version: str
    release: str
    subpath: str
    # Rendered with version/release/arch. Upstream is not consistent about
    # field order between stable releases and branched composes.
    checksum_template: str

    def checksum_code(self, arch: str) -> str:
        return self.checksum_template.format(version=self.version, release=self.release, arch=arch)


RELEASES = MappingProxyType(
    {
        "28": ReleaseDescriptor(
            version="28",
            release="1.1",
            subpath="releases/28",
            checksum_template="{version}-{release}-{arch}",
        ),
        "29": ReleaseDescriptor(
            version="29",
            release="20180905.n.0",
            subpath="development/29",
            checksum_template="{version}-{arch}-{release}",
        ),
    }
)


def resolve_release(version: str) -> ReleaseDescriptor:
    desc = RELEASES.get(version)
    if desc is None:
        raise UnsupportedVersionError(version, sorted(RELEASES))
    return desc


@dataclass(frozen=True)
class ImageRef:
    base_url: str
    filename: str
    checksum_filename: str

    @property
    def url(self) -> str:
        return f"{self.base_url}/{self.filename}"

    @property
    def checksum_url(self) -> str:
        return f"{self.base_url}/{self.checksum_filename}"


def container_image(desc: ReleaseDescriptor, arch: str, *, mirror: str = DEFAULT_MIRROR) -> ImageRef:
    return ImageRef(
        base_url=f"{mirror.rstrip('/')}/{desc.subpath}/Container/{arch}/images",
        filename=f"Fedora-Container-Base-{desc.version}-{desc.release}.{arch}.tar.xz",
        checksum_filename=f"Fedora-Container-{desc.checksum_code(arch)}-CHECKSUM",
    )


def server_image(desc: ReleaseDescriptor, arch: str, *, mirror: str = DEFAULT_MIRROR) -> ImageRef:
    return ImageRef(
        base_url=f"{mirror.rstrip('/')}/{desc.subpath}/Server/{arch}/images",
        filename=f"Fedora-Server-{desc.version}-{desc.release}.{arch}.raw.xz",
        checksum_filename=f"Fedora-Server-{desc.checksum_code(arch)}-CHECKSUM",
    )


@dataclass(frozen=True)
class Artifacts:
    """Output archive paths. Named after the release tag, not the version."""

    outdir: Path
    release: str
    arch: str

    @property
    def kernel(self) -> Path:
        return self.outdir / f"packet-f{self.release}.{self.arch}-kernel.tar.gz"

    @property
    def modules(self) -> Path:
        return self.outdir / f"packet-f{self.release}.{self.arch}-modules.tar.gz"

    @property
    def initrd(self) -> Path:
        return self.outdir / f"packet-f{self.release}.{self.arch}-initrd.tar.gz"

    @property
    def rootfs(self) -> Path:
        return self.outdir / f"server-f{self.release}.{self.arch}-rootfs.tar.gz"

    def all(self) -> list[Path]:
        return [self.kernel, self.modules, self.initrd, self.rootfs]
