from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .classify import (
    Classification,
    classify_lines,
    find_newest_log,
    parse_ru_version,
    read_log_lines,
)
from .errors import ConfigError, ConflictError, ParseError
from .formats import DEFAULT_BASE_AMD64, DEFAULT_BASE_ARM64, DEFAULT_LOG_PATTERN
from .manifest import PackageManifest, manifest_filename, write_manifest
from .model import Arch

DEFAULT_BASE_PACKAGES: dict[Arch, str] = {
    Arch.AMD64: DEFAULT_BASE_AMD64,
    Arch.ARM64: DEFAULT_BASE_ARM64,
}

# Order in which manifests are written.
WRITE_ORDER: tuple[Arch, ...] = (Arch.ARM64, Arch.AMD64)


@dataclass(frozen=True)
class NamesResult:
    input_file: Path
    ru: str
    classification: Classification
    outputs: dict[Arch, Path]
    manifests: dict[Arch, PackageManifest]


def resolve_input_file(
    software_dir: Path, input_file: Path | None, pattern: str = DEFAULT_LOG_PATTERN
) -> Path:
    if input_file is None:
        found = find_newest_log(software_dir, pattern)
        if found is None:
            raise ConfigError(f"no input file given and no {pattern} in {software_dir}")
        input_file = found
    if not input_file.is_file():
        raise ConfigError(f"cannot read input file: {input_file}")
    return input_file


def output_paths(software_dir: Path, ru: str) -> dict[Arch, Path]:
    return {arch: software_dir / manifest_filename(arch, ru) for arch in WRITE_ORDER}


def generate_package_names(
    software_dir: Path,
    *,
    input_file: Path | None = None,
    ru: str | None = None,
    base_packages: Mapping[Arch, str] | None = None,
    force: bool = False,
    log_pattern: str = DEFAULT_LOG_PATTERN,
) -> NamesResult:
    """Classify an AutoUpgrade download log and write both package lists.

    Nothing is written unless the RU is known and, without ``force``, neither
    output file exists yet.
    """
    if not software_dir.is_dir():
        raise ConfigError(f"software directory not found: {software_dir}")

    log_path = resolve_input_file(software_dir, input_file, log_pattern)
    lines = read_log_lines(log_path)

    if ru is None or not ru.strip():
        ru = parse_ru_version(lines)
        if ru is None:
            raise ParseError(f"failed to parse RU version from {log_path}")
    ru = ru.strip()

    outputs = output_paths(software_dir, ru)
    if not force:
        existing = [p for p in outputs.values() if p.exists()]
        if existing:
            listed = ", ".join(p.as_posix() for p in existing)
            raise ConflictError(
                f"output files exist (use --force to overwrite): {listed}"
            )

    bases = dict(DEFAULT_BASE_PACKAGES)
    if base_packages:
        bases.update(base_packages)

    classification = classify_lines(lines)
    manifests: dict[Arch, PackageManifest] = {}
    for arch in WRITE_ORDER:
        manifest = PackageManifest.from_package_set(
            classification.for_arch(arch), bases[arch]
        )
        write_manifest(outputs[arch], manifest, force=force)
        manifests[arch] = manifest

    return NamesResult(
        input_file=log_path,
        ru=ru,
        classification=classification,
        outputs=outputs,
        manifests=manifests,
    )
