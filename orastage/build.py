from __future__ import annotations

import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .errors import BuildError
from .model import Arch


@dataclass(frozen=True)
class BuildOptions:
    arch: Arch
    release: str
    release_update: str
    dockerfile: str  # relative to the build context
    tag: str
    target: str = ""  # e.g. "builder"; empty builds the final stage
    buildx: bool = False


def default_image_tag(repo: str, release_update: str, arch: Arch) -> str:
    return f"{repo}:{release_update}-{arch.value}"


def build_command(opts: BuildOptions) -> list[str]:
    cmd = ["docker", "buildx", "build"] if opts.buildx else ["docker", "build"]
    cmd += [
        "--file",
        opts.dockerfile,
        "--build-arg",
        f"TARGETARCH={opts.arch.value}",
        "--build-arg",
        f"ORACLE_RELEASE={opts.release}",
        "--build-arg",
        f"ORACLE_RELEASE_UPDATE={opts.release_update}",
        "--tag",
        opts.tag,
        "--platform",
        f"linux/{opts.arch.value}",
    ]
    if opts.target:
        cmd += ["--target", opts.target]
    cmd.append(".")
    return cmd


def format_command(cmd: list[str], cwd: Path) -> str:
    return f"(cd {shlex.quote(cwd.as_posix())} && {shlex.join(cmd)})"


def run_build(cmd: list[str], cwd: Path) -> None:
    try:
        subprocess.run(cmd, cwd=cwd, check=True)
    except FileNotFoundError as e:
        raise BuildError(f"builder not found: {cmd[0]}") from e
    except subprocess.CalledProcessError as e:
        raise BuildError(f"{shlex.join(cmd)} exited with status {e.returncode}") from e
