from __future__ import annotations

import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from .errors import ConfigError, ConflictError, ResolutionWarning, WriteError
from .formats import (
    BASE_DIR_NAME,
    DOCKERIGNORE_BACKUP_SUFFIX,
    DOCKERIGNORE_HEADER,
    DOCKERIGNORE_NAME,
    GENERIC_DIR_NAME,
    MANIFEST_PREFIX,
    RU_DIR_PREFIX,
)
from .manifest import load_manifest_values, manifest_filename, required_packages
from .model import Arch


@dataclass(frozen=True)
class SourceDir:
    """A directory searched for package files, and where its hits are staged."""

    kind: str  # "base" or "RU_<ru>"
    path: Path


@dataclass(frozen=True)
class StagedFile:
    name: str
    source: Path
    dest: Path


@dataclass
class StageResult:
    manifest: Path
    stage_root: Path
    required: list[str]
    staged: list[StagedFile] = field(default_factory=list)
    warnings: list[ResolutionWarning] = field(default_factory=list)

    @property
    def missing(self) -> list[str]:
        return [w.filename for w in self.warnings if w.filename]


def find_package_list(software_dir: Path, arch: Arch, ru: str) -> Path:
    """Locate the package list for ``arch``/``ru``.

    ``software/oracle_package_names_<arch>_<ru>`` is preferred; the older
    per-arch layout ``software/<arch>/oracle_package_names_<ru>`` is the
    fallback.
    """
    flat = software_dir / manifest_filename(arch, ru)
    nested = software_dir / arch.value / f"{MANIFEST_PREFIX}_{ru}"
    for candidate in (flat, nested):
        if candidate.is_file():
            return candidate
    raise ConfigError(f"package list not found: {flat} or {nested}")


def ru_dir_name(ru: str) -> str:
    return f"{RU_DIR_PREFIX}{ru}"


def source_dirs(source_root: Path, arch: Arch, ru: str) -> list[SourceDir]:
    arch_root = source_root / arch.value
    return [
        SourceDir(kind=BASE_DIR_NAME, path=arch_root / BASE_DIR_NAME),
        SourceDir(kind=ru_dir_name(ru), path=arch_root / ru_dir_name(ru)),
    ]


def is_plain_filename(name: str) -> bool:
    return bool(name) and name not in {".", ".."} and Path(name).name == name


def resolve_package(name: str, sources: Sequence[SourceDir]) -> SourceDir | None:
    """First source dir holding a regular file of exactly ``name``.

    Names with a directory part never resolve, so nothing outside the source
    dirs is read and nothing outside the stage tree is written.
    """
    if not is_plain_filename(name):
        return None
    for source in sources:
        if (source.path / name).is_file():
            return source
    return None


def _reset_dir(path: Path) -> None:
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def stage_packages(
    manifest_path: Path,
    *,
    source_root: Path,
    stage_root: Path,
    arch: Arch,
    ru: str,
    dry_run: bool = False,
) -> StageResult:
    """Copy every file the package list names into ``stage_root``.

    Files are looked up in ``<source>/<arch>/base`` first, then in
    ``<source>/<arch>/RU_<ru>``, and copied into the matching folder under
    ``<stage_root>/<arch>``. Names found in neither are reported as
    warnings; staging carries on without them.
    """
    values = load_manifest_values(manifest_path)
    required = required_packages(values)
    result = StageResult(
        manifest=manifest_path, stage_root=stage_root, required=required
    )

    sources = source_dirs(source_root, arch, ru)
    for source in sources:
        if not source.path.is_dir():
            result.warnings.append(
                ResolutionWarning(
                    filename="",
                    message=f"{source.kind} source dir missing: {source.path}",
                )
            )

    arch_stage = stage_root / arch.value
    if not dry_run:
        for source in sources:
            _reset_dir(arch_stage / source.kind)
        (stage_root / GENERIC_DIR_NAME).mkdir(parents=True, exist_ok=True)

    for name in required:
        if not is_plain_filename(name):
            result.warnings.append(
                ResolutionWarning(
                    filename=name,
                    message=f"package name is not a plain file name: {name}",
                )
            )
            continue
        hit = resolve_package(name, sources)
        if hit is None:
            result.warnings.append(
                ResolutionWarning(
                    filename=name,
                    message=f"package not found in base/RU sources: {name}",
                )
            )
            continue
        dest = arch_stage / hit.kind / name
        if not dry_run:
            try:
                shutil.copy2(hit.path / name, dest)
            except OSError as e:
                raise WriteError(f"failed staging {name}: {e.strerror or e}") from e
        result.staged.append(StagedFile(name=name, source=hit.path / name, dest=dest))

    return result


def _relative_posix(path: Path, root: Path) -> str | None:
    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except ValueError:
        return None


def render_dockerignore(
    *,
    stage_rel: str,
    manifest_rel: str | None,
    extra_allow: Sequence[str] = (),
) -> str:
    lines = [
        DOCKERIGNORE_HEADER,
        "# Deny everything, then allow only what this build needs.",
        "*",
        "",
        "# Staged packages",
        f"!{stage_rel.rstrip('/')}/**",
    ]
    if manifest_rel:
        lines += ["", "# Package list", f"!{manifest_rel}"]
    if extra_allow:
        lines += ["", "# Build files"]
        lines += [f"!{pattern.lstrip('!')}" for pattern in extra_allow]
    return "\n".join(lines) + "\n"


def dockerignore_for_stage(
    *,
    context_dir: Path,
    stage_root: Path,
    arch: Arch,
    manifest_path: Path,
    extra_allow: Sequence[str] = (),
) -> str:
    stage_rel = _relative_posix(stage_root / arch.value, context_dir)
    if stage_rel is None:
        raise ConfigError(f"stage dir must be inside the build context: {stage_root}")
    manifest_rel = _relative_posix(manifest_path, context_dir)
    if manifest_rel is None:
        raise ConfigError(
            f"package list must be inside the build context: {manifest_path}"
        )
    return render_dockerignore(
        stage_rel=stage_rel,
        manifest_rel=manifest_rel,
        extra_allow=extra_allow,
    )


def _is_generated(path: Path) -> bool:
    try:
        with path.open(encoding="utf-8", errors="replace") as fh:
            return fh.readline().rstrip("\n") == DOCKERIGNORE_HEADER
    except OSError:
        return False


def check_dockerignore_backup(context_dir: Path) -> None:
    """Refuse to replace a user's ``.dockerignore`` when its backup slot is taken."""
    path = context_dir / DOCKERIGNORE_NAME
    backup = path.with_name(path.name + DOCKERIGNORE_BACKUP_SUFFIX)
    if path.exists() and not _is_generated(path) and backup.exists():
        raise ConflictError(
            f"{backup} already exists; move it away before staging into {context_dir}"
        )


def write_dockerignore(context_dir: Path, text: str) -> Path:
    path = context_dir / DOCKERIGNORE_NAME
    backup = path.with_name(path.name + DOCKERIGNORE_BACKUP_SUFFIX)
    check_dockerignore_backup(context_dir)
    try:
        if path.exists() and not _is_generated(path):
            path.replace(backup)
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise WriteError(f"failed writing {path}: {e.strerror or e}") from e
    return path


def context_files(context_dir: Path, ignore_lines: Sequence[str]) -> list[str]:
    """Relative paths a builder receives from ``context_dir`` under ``ignore_lines``."""
    spec = pathspec.PathSpec.from_lines("gitwildmatch", ignore_lines)
    out: list[str] = []
    for p in sorted(context_dir.rglob("*")):
        if not p.is_file():
            continue
        rel = p.relative_to(context_dir).as_posix()
        if not spec.match_file(rel):
            out.append(rel)
    return out


def cleanup_stage(stage_root: Path, context_dir: Path) -> list[Path]:
    """Remove the stage tree and put back the user's own ``.dockerignore``."""
    removed: list[Path] = []
    if stage_root.exists():
        shutil.rmtree(stage_root)
        removed.append(stage_root)

    path = context_dir / DOCKERIGNORE_NAME
    backup = path.with_name(path.name + DOCKERIGNORE_BACKUP_SUFFIX)
    if backup.exists() and (not path.exists() or _is_generated(path)):
        backup.replace(path)
    elif path.exists() and _is_generated(path):
        path.unlink()
        removed.append(path)
    return removed
