from __future__ import annotations

import os
import re
import shlex
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError, ConflictError, WriteError
from .formats import (
    KEY_BASE,
    KEY_JDKPATCH,
    KEY_OJVM,
    KEY_ONEOFFS,
    KEY_OPATCH,
    KEY_PATCH,
    KEY_PERLPATCH,
    MANIFEST_PREFIX,
    PACKAGE_KEY_SUFFIX,
)
from .model import Arch, PackageSet

_ASSIGNMENT_RE = re.compile(r"^([A-Z0-9_]+)=(.*)$")


@dataclass(frozen=True)
class PackageManifest:
    """Flattened, on-disk form of a :class:`PackageSet`."""

    base: str = ""
    patch: str = ""
    ojvm: str = ""
    opatch: str = ""
    jdk_patch: str = ""
    perl_patch: str = ""
    oneoffs: tuple[str, ...] = ()

    @classmethod
    def from_package_set(cls, pkgs: PackageSet, base_package: str) -> PackageManifest:
        return cls(
            base=base_package,
            patch=pkgs.patch or "",
            ojvm=pkgs.ojvm or "",
            opatch=pkgs.opatch or "",
            jdk_patch=pkgs.jdk_patch or "",
            perl_patch=pkgs.perl_patch or "",
            oneoffs=tuple(pkgs.oneoffs),
        )

    @classmethod
    def from_values(cls, values: Mapping[str, str]) -> PackageManifest:
        return cls(
            base=values.get(KEY_BASE, ""),
            patch=values.get(KEY_PATCH, ""),
            ojvm=values.get(KEY_OJVM, ""),
            opatch=values.get(KEY_OPATCH, ""),
            jdk_patch=values.get(KEY_JDKPATCH, ""),
            perl_patch=values.get(KEY_PERLPATCH, ""),
            oneoffs=tuple(values.get(KEY_ONEOFFS, "").split()),
        )

    def to_values(self) -> dict[str, str]:
        return {
            KEY_BASE: self.base,
            KEY_PATCH: self.patch,
            KEY_OJVM: self.ojvm,
            KEY_OPATCH: self.opatch,
            KEY_JDKPATCH: self.jdk_patch,
            KEY_PERLPATCH: self.perl_patch,
            KEY_ONEOFFS: " ".join(self.oneoffs),
        }


def manifest_filename(arch: Arch, ru: str) -> str:
    return f"{MANIFEST_PREFIX}_{arch.value}_{ru}"


def render_manifest(manifest: PackageManifest) -> str:
    lines = [f'{key}="{value}"' for key, value in manifest.to_values().items()]
    return "\n".join(lines) + "\n"


def parse_manifest(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` assignment lines into an ordered mapping.

    Values may be double-quoted, single-quoted or bare, as a POSIX shell
    would accept them. Blank lines and ``#`` comments are ignored.
    """
    values: dict[str, str] = {}
    for lineno, raw in enumerate(text.splitlines(), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        m = _ASSIGNMENT_RE.match(line)
        if m is None:
            continue
        key, rhs = m.group(1), m.group(2)
        try:
            tokens = shlex.split(rhs, comments=True)
        except ValueError as e:
            raise ConfigError(f"line {lineno}: invalid value for {key}: {e}") from e
        values[key] = " ".join(tokens)
    return values


def load_manifest_values(path: Path) -> dict[str, str]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(
            f"cannot read package list: {path} ({e.strerror or e})"
        ) from e
    try:
        return parse_manifest(text)
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}") from e


def load_manifest(path: Path) -> PackageManifest:
    return PackageManifest.from_values(load_manifest_values(path))


def required_packages(values: Mapping[str, str]) -> list[str]:
    """Filenames a build needs: every ``*_PKG`` value, then each one-off.

    Duplicates are kept; each name is resolved independently when staging.
    """
    out: list[str] = []
    for key, value in values.items():
        if key.endswith(PACKAGE_KEY_SUFFIX) and value:
            out.append(value)
    out.extend(values.get(KEY_ONEOFFS, "").split())
    return out


def write_manifest(
    path: Path, manifest: PackageManifest, *, force: bool = False
) -> Path:
    if path.exists() and not force:
        raise ConflictError(f"output file exists (use --force to overwrite): {path}")

    directory = path.parent
    if not directory.is_dir():
        raise WriteError(f"output directory does not exist: {directory}")

    tmp_name: str | None = None
    try:
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=directory,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as fh:
            tmp_name = fh.name
            fh.write(render_manifest(manifest))
        os.chmod(tmp_name, 0o644)
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None:
            Path(tmp_name).unlink(missing_ok=True)
        raise WriteError(f"failed writing {path}: {e.strerror or e}") from e
    return path
