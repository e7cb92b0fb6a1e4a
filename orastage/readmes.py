from __future__ import annotations

import hashlib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .formats import BASE_DIR_NAME, GENERIC_DIR_NAME, README_NAME, RU_DIR_PREFIX
from .manifest import manifest_filename
from .model import Arch

ARCH_ORDER: tuple[Arch, ...] = (Arch.AMD64, Arch.ARM64)


@dataclass
class ReadmeResult:
    software_dir: Path
    written: list[Path] = field(default_factory=list)
    skipped: list[Path] = field(default_factory=list)


def human_size(num_bytes: int) -> str:
    """Format a byte count the way ``du -h`` does (1024-based, one decimal < 10)."""
    size = float(num_bytes)
    for unit in ("B", "K", "M", "G", "T"):
        if size < 1024 or unit == "T":
            if unit == "B":
                return f"{int(size)}B"
            if size < 10:
                return f"{size:.1f}{unit}"
            return f"{size:.0f}{unit}"
        size /= 1024
    return f"{num_bytes}B"  # pragma: no cover


def sha256_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    h = hashlib.sha256()
    with path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(chunk_size), b""):
            h.update(chunk)
    return h.hexdigest()


def root_readme(version: str) -> str:
    return "\n".join(
        [
            f"# Oracle Database {version} Software Packages",
            "",
            "This tree contains platform-specific and generic software for "
            f"building Oracle Database {version} Docker images.",
            "",
            "## Layout",
            "",
            "- `amd64/` - AMD64 platform folders, with `RU_*` subfolders and `base/`",
            "- `arm64/` - ARM64 platform folders, with `RU_*` subfolders and `base/`",
            "- `generic/` - Architecture-independent packages",
            "",
            "Consolidated package lists live at the root as:",
            "- `oracle_package_names_amd64_<RU>`",
            "- `oracle_package_names_arm64_<RU>`",
            "",
        ]
    )


def arch_readme(arch: Arch) -> str:
    label = arch.name
    return (
        f"# {label} Packages\n\n"
        f"This folder contains Release Update (RU) subfolders and a `base/` "
        f"folder for {label} builds.\n"
    )


def base_readme(arch: Arch) -> str:
    label = arch.name
    return (
        f"# {label} Base Packages\n\n"
        f"Place the base Oracle Database Home ZIP(s) for {label} here.\n"
    )


def generic_readme() -> str:
    return "# Generic Packages\n\nArchitecture-independent patches and utilities.\n"


def ru_readme(
    arch: Arch,
    ru_dir: Path,
    version: str,
    *,
    checksum: Callable[[Path], str] | None = sha256_file,
) -> str:
    ru_base = ru_dir.name
    ru = ru_base[len(RU_DIR_PREFIX) :]
    label = arch.name
    lines = [
        f"# Oracle {version} {ru_base} ({label})",
        "",
        f"This folder contains architecture-specific patches needed for "
        f"**{ru_base}** on **{label}**.",
        "",
        "## Consolidated package list",
        "",
        f"- `../../{manifest_filename(arch, ru)}`",
        "",
        "## Files in this folder",
        "",
    ]
    files = sorted(
        p for p in ru_dir.iterdir() if p.is_file() and p.name != README_NAME
    )
    if not files:
        lines += ["_(No files found in this RU directory.)_", ""]
        return "\n".join(lines)
    for f in files:
        entry = f"- `{f.name}` - {human_size(f.stat().st_size)}"
        if checksum is not None:
            entry += f" - SHA256: `{checksum(f)}`"
        lines.append(entry)
    lines.append("")
    return "\n".join(lines)


def _write(path: Path, text: str, *, force: bool, result: ReadmeResult) -> None:
    if path.exists() and not force:
        result.skipped.append(path)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    result.written.append(path)


def generate_readmes(
    software_dir: Path, *, force: bool = False, with_hash: bool = True
) -> ReadmeResult:
    """Write README.md inventories for one ``<version>/software`` tree.

    The version label is the name of the parent folder (``19c``, ``23ai``).
    """
    result = ReadmeResult(software_dir=software_dir)
    version = software_dir.resolve().parent.name
    checksum = sha256_file if with_hash else None

    for arch in ARCH_ORDER:
        (software_dir / arch.value / BASE_DIR_NAME).mkdir(parents=True, exist_ok=True)
    (software_dir / GENERIC_DIR_NAME).mkdir(parents=True, exist_ok=True)

    _write(software_dir / README_NAME, root_readme(version), force=force, result=result)
    for arch in ARCH_ORDER:
        _write(
            software_dir / arch.value / README_NAME,
            arch_readme(arch),
            force=force,
            result=result,
        )
    for arch in ARCH_ORDER:
        _write(
            software_dir / arch.value / BASE_DIR_NAME / README_NAME,
            base_readme(arch),
            force=force,
            result=result,
        )
    _write(
        software_dir / GENERIC_DIR_NAME / README_NAME,
        generic_readme(),
        force=force,
        result=result,
    )

    for arch in ARCH_ORDER:
        ru_dirs = sorted(
            p
            for p in (software_dir / arch.value).glob(f"{RU_DIR_PREFIX}*")
            if p.is_dir()
        )
        for ru_dir in ru_dirs:
            readme = ru_dir / README_NAME
            if readme.exists() and not force:
                result.skipped.append(readme)
                continue
            _write(
                readme,
                ru_readme(arch, ru_dir, version, checksum=checksum),
                force=True,
                result=result,
            )
    return result
