from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Mapping, Optional

from .arch import normalize_arch
from .config import CONFIG_ENV, DEFAULT_LOG_NAME, PrepConfig, env_verbose, load_config
from .errors import CommandError, PrepError, UsageError
from .lib.hostops import HostOps, SudoHostOps
from .logging_utils import configure_logging
from .pipeline import PrepCtx, run_pipeline
from .release import resolve_release
from .steps import (
    ExtractContainerStep,
    ExtractServerStep,
    FetchContainerStep,
    FetchServerStep,
)

logger = logging.getLogger(__name__)

PROG = "packet-fedora-images"


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog=PROG,
        description="Download, verify and repackage Fedora images for bare-metal provisioning.",
        epilog=f"Set VERBOSE=1 for verbose output; {CONFIG_ENV} may name a YAML config file.",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose tool output and command tracing")
    p.add_argument("version", help="Fedora version (28 or 29)")
    p.add_argument("arch", help="Architecture (arm64 or aarch64)")
    p.add_argument("outdir", help="Directory for the output archives")
    return p


def build_steps():
    return [
        FetchContainerStep(),
        ExtractContainerStep(),
        FetchServerStep(),
        ExtractServerStep(),
    ]


def run(
    *,
    version: str,
    arch: str,
    outdir: str,
    verbose: bool = False,
    cfg: Optional[PrepConfig] = None,
    ops: Optional[HostOps] = None,
) -> List[Path]:
    """Prepare the four provisioning archives for version/arch under outdir."""

    canonical_arch = normalize_arch(arch)
    release = resolve_release(version)
    cfg = cfg or PrepConfig()
    ops = ops or SudoHostOps()

    ctx = PrepCtx(
        release=release,
        arch=canonical_arch,
        outdir=Path(outdir),
        cfg=cfg,
        ops=ops,
        verbose=verbose,
    )
    ctx.work_dir.mkdir(parents=True, exist_ok=True)

    actual_log_path = configure_logging(
        cfg.log_path(ctx.work_dir),
        fallback_path=str(ctx.work_dir / DEFAULT_LOG_NAME),
        verbose=verbose,
    )
    logger.info(
        "Preparing Fedora %s (release %s) for %s into %s (log %s)",
        release.version,
        release.release,
        canonical_arch,
        ctx.outdir,
        actual_log_path,
    )

    ops.check_privileges()
    ran = run_pipeline(ctx=ctx, steps=build_steps())
    logger.info("Completed steps: %s", ", ".join(ran))
    return ctx.artifacts.all()


def main(
    argv: Optional[list[str]] = None,
    *,
    environ: Optional[Mapping[str, str]] = None,
    ops: Optional[HostOps] = None,
) -> int:
    environ = os.environ if environ is None else environ
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        cfg = load_config(environ.get(CONFIG_ENV))
        outputs = run(
            version=args.version,
            arch=args.arch,
            outdir=args.outdir,
            verbose=bool(args.verbose) or env_verbose(environ),
            cfg=cfg,
            ops=ops,
        )
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"{PROG}: error: {e}", file=sys.stderr)
        return 1
    except (PrepError, OSError) as e:
        logger.debug("Preparation failed", exc_info=True)
        if isinstance(e, CommandError) and e.stderr.strip():
            logger.debug("stderr of %s:\n%s", e.argv[0], e.stderr.strip())
        lines = str(e).strip().splitlines() or [type(e).__name__]
        print(f"{PROG}: error: {lines[0]}", file=sys.stderr)
        return 1

    for p in outputs:
        print(p)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
