from __future__ import annotations

import pytest

from orastage.model import Arch, PackageCategory, PackageSet


def test_assign_fills_empty_slot() -> None:
    pkgs = PackageSet(arch=Arch.AMD64)
    out = pkgs.assign(PackageCategory.OJVM_RELEASE_UPDATE, "ojvm.zip")
    assert out.ojvm == "ojvm.zip"
    assert out.oneoffs == ()
    # Transitions return a new set.
    assert pkgs.ojvm is None


def test_database_release_update_fills_patch_slot() -> None:
    pkgs = PackageSet(arch=Arch.AMD64).assign(PackageCategory.BASE_RELEASE, "ru.zip")
    assert pkgs.patch == "ru.zip"
    assert pkgs.oneoffs == ()
    assert len(PackageCategory) == 7


def test_assign_demotes_when_slot_filled() -> None:
    pkgs = PackageSet(arch=Arch.AMD64)
    pkgs = pkgs.assign(PackageCategory.PERL_BUNDLE_PATCH, "perl1.zip")
    pkgs = pkgs.assign(PackageCategory.PERL_BUNDLE_PATCH, "perl2.zip")
    assert pkgs.perl_patch == "perl1.zip"
    assert pkgs.oneoffs == ("perl2.zip",)


@pytest.mark.parametrize(
    "category",
    [
        PackageCategory.OTHER_PATCH,
        PackageCategory.UNKNOWN,
    ],
)
def test_categories_without_slot_go_to_oneoffs(category: PackageCategory) -> None:
    pkgs = PackageSet(arch=Arch.ARM64).assign(category, "x.zip")
    assert pkgs.slot_values() == (None, None, None, None, None)
    assert pkgs.oneoffs == ("x.zip",)


def test_assign_ignores_empty_name_and_duplicates() -> None:
    pkgs = PackageSet(arch=Arch.ARM64).assign(PackageCategory.OPATCH, "opatch.zip")
    assert pkgs.assign(PackageCategory.OPATCH, "opatch.zip") == pkgs
    assert pkgs.assign(PackageCategory.UNKNOWN, "opatch.zip") == pkgs
    assert pkgs.assign(PackageCategory.UNKNOWN, "") == pkgs


def test_arch_parse() -> None:
    assert Arch.parse("AMD64") is Arch.AMD64
    assert Arch.parse(" arm64 ") is Arch.ARM64
    with pytest.raises(ValueError):
        Arch.parse("x86")
