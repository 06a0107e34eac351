from __future__ import annotations

from typing import Sequence


class PrepError(RuntimeError):
    """Base class for every failure that aborts a run."""


class UsageError(PrepError):
    pass


class UnsupportedVersionError(UsageError):
    def __init__(self, version: str, supported: Sequence[str]):
        super().__init__(f"unsupported version: {version} (supported: {', '.join(supported)})")
        self.version = version


class UnsupportedArchError(UsageError):
    def __init__(self, arch: str, supported: Sequence[str]):
        super().__init__(f"unsupported architecture: {arch} (supported: {', '.join(supported)})")
        self.arch = arch


class ConfigError(PrepError):
    pass


class PrivilegeError(PrepError):
    pass


class FetchError(PrepError):
    pass


class ChecksumError(PrepError):
    pass


class CommandError(PrepError):
    def __init__(self, argv: Sequence[str], returncode: int, stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        msg = f"Command failed ({returncode}): {' '.join(self.argv)}"
        first = next((line.strip() for line in stderr.splitlines() if line.strip()), "")
        if first:
            msg += f": {first}"
        super().__init__(msg)


class ExtractError(PrepError):
    pass
