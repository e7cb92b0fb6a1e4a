from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum


class Arch(str, Enum):
    AMD64 = "amd64"
    ARM64 = "arm64"

    @classmethod
    def parse(cls, raw: str) -> Arch:
        value = raw.strip().lower()
        for arch in cls:
            if arch.value == value or arch.name.lower() == value:
                return arch
        raise ValueError(f"unknown architecture: {raw!r} (expected amd64 or arm64)")


class PackageCategory(str, Enum):
    BASE_RELEASE = "BaseRelease"
    OJVM_RELEASE_UPDATE = "OjvmReleaseUpdate"
    OPATCH = "OPatch"
    JDK_BUNDLE_PATCH = "JdkBundlePatch"
    PERL_BUNDLE_PATCH = "PerlBundlePatch"
    OTHER_PATCH = "OtherPatch"
    UNKNOWN = "Unknown"


# Categories without an entry here only ever land in ``oneoffs``.
SLOT_FOR_CATEGORY: dict[PackageCategory, str] = {
    PackageCategory.BASE_RELEASE: "patch",
    PackageCategory.OJVM_RELEASE_UPDATE: "ojvm",
    PackageCategory.OPATCH: "opatch",
    PackageCategory.JDK_BUNDLE_PATCH: "jdk_patch",
    PackageCategory.PERL_BUNDLE_PATCH: "perl_patch",
}


@dataclass(frozen=True)
class PackageSet:
    """Patch files selected for one architecture.

    Each single slot is either empty (``None``) or holds the first filename
    assigned to it. Later candidates for a filled slot, and everything without
    a dedicated slot, go to ``oneoffs`` in first-seen order.
    """

    arch: Arch
    patch: str | None = None
    ojvm: str | None = None
    opatch: str | None = None
    jdk_patch: str | None = None
    perl_patch: str | None = None
    oneoffs: tuple[str, ...] = ()

    def slot_values(self) -> tuple[str | None, ...]:
        return (self.patch, self.ojvm, self.opatch, self.jdk_patch, self.perl_patch)

    def filenames(self) -> list[str]:
        names = [name for name in self.slot_values() if name]
        names.extend(self.oneoffs)
        return names

    def __contains__(self, filename: object) -> bool:
        return filename in self.filenames()

    def assign(self, category: PackageCategory, filename: str) -> PackageSet:
        if not filename or filename in self:
            return self
        slot = SLOT_FOR_CATEGORY.get(category)
        if slot is not None and getattr(self, slot) is None:
            return replace(self, **{slot: filename})
        return replace(self, oneoffs=self.oneoffs + (filename,))
