from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigError
from .formats import (
    DEFAULT_LOG_PATTERN,
    FILE_LABEL,
    LOCATED_MARKER,
    RU_HEADER,
    SUFFIX_AMD64,
    SUFFIX_ARM64,
    SUFFIX_GENERIC,
)
from .model import Arch, PackageCategory, PackageSet

# Evaluated top to bottom; the generic PATCH phrase must stay last.
CATEGORY_RULES: tuple[tuple[str, PackageCategory], ...] = (
    ("DATABASE RELEASE UPDATE", PackageCategory.BASE_RELEASE),
    ("OJVM RELEASE UPDATE", PackageCategory.OJVM_RELEASE_UPDATE),
    ("OPATCH", PackageCategory.OPATCH),
    ("JDK BUNDLE PATCH", PackageCategory.JDK_BUNDLE_PATCH),
    ("PERL BUNDLE PATCH", PackageCategory.PERL_BUNDLE_PATCH),
    ("PATCH", PackageCategory.OTHER_PATCH),
)

AFFINITY_RULES: tuple[tuple[str, tuple[Arch, ...]], ...] = (
    (SUFFIX_ARM64, (Arch.ARM64,)),
    (SUFFIX_AMD64, (Arch.AMD64,)),
    (SUFFIX_GENERIC, (Arch.ARM64, Arch.AMD64)),
)

_RU_TOKEN_RE = re.compile(r"^\d+\.\d+\.\d+\.\d+(\.\d+)?$")


@dataclass(frozen=True)
class Classification:
    packages: dict[Arch, PackageSet]
    # File lines whose name carries no known platform suffix.
    skipped: list[str] = field(default_factory=list)

    def for_arch(self, arch: Arch) -> PackageSet:
        return self.packages[arch]


def categorize_line(line: str) -> PackageCategory:
    upper = line.upper()
    for phrase, category in CATEGORY_RULES:
        if phrase in upper:
            return category
    return PackageCategory.UNKNOWN


def extract_filename(line: str) -> str | None:
    start = line.find(FILE_LABEL)
    if start < 0:
        return None
    rest = line[start + len(FILE_LABEL) :]
    end = rest.find(LOCATED_MARKER)
    if end < 0:
        return None
    name = rest[:end].replace("\r", "").strip()
    return name or None


def arch_affinity(filename: str) -> tuple[Arch, ...]:
    for suffix, arches in AFFINITY_RULES:
        if filename.endswith(suffix):
            return arches
    return ()


def empty_package_sets() -> dict[Arch, PackageSet]:
    return {arch: PackageSet(arch=arch) for arch in Arch}


# (current category, per-arch package sets, unrouted filenames)
_FoldState = tuple[PackageCategory, dict[Arch, PackageSet], tuple[str, ...]]


def _step(state: _FoldState, line: str) -> _FoldState:
    current, packages, skipped = state
    if FILE_LABEL not in line:
        category = categorize_line(line)
        if category is not PackageCategory.UNKNOWN:
            return category, packages, skipped
        return state

    filename = extract_filename(line)
    if filename is None:
        return state
    arches = arch_affinity(filename)
    if not arches:
        if filename in skipped:
            return state
        return current, packages, skipped + (filename,)
    updated = dict(packages)
    for arch in arches:
        updated[arch] = updated[arch].assign(current, filename)
    return current, updated, skipped


def classify_lines(lines: Iterable[str]) -> Classification:
    """Fold log lines into one :class:`PackageSet` per architecture.

    A header line sets the category for every following file line until the
    next recognised header; file lines seen before any header are filed as
    ``Unknown`` and therefore land in ``oneoffs``.
    """
    state: _FoldState = (PackageCategory.UNKNOWN, empty_package_sets(), ())
    for line in lines:
        state = _step(state, line)
    _, packages, skipped = state
    return Classification(packages=packages, skipped=list(skipped))


def parse_ru_version(lines: Iterable[str]) -> str | None:
    for line in lines:
        if RU_HEADER not in line.upper():
            continue
        for token in line.split():
            if _RU_TOKEN_RE.match(token):
                parts = token.split(".")
                return ".".join(parts[:4])
    return None


def read_log_lines(path: Path) -> list[str]:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise ConfigError(f"cannot read input file: {path} ({e.strerror or e})") from e
    return text.splitlines()


def find_newest_log(
    software_dir: Path, pattern: str = DEFAULT_LOG_PATTERN
) -> Path | None:
    candidates = [p for p in software_dir.glob(pattern) if p.is_file()]
    if not candidates:
        return None
    return max(candidates, key=lambda p: (p.stat().st_mtime, p.name))
