from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from orastage.cli import main
from orastage.model import Arch
from orastage.readmes import generate_readmes, human_size, ru_readme


@pytest.mark.parametrize(
    ("num_bytes", "expected"),
    [
        (0, "0B"),
        (512, "512B"),
        (2048, "2.0K"),
        (15 * 1024 * 1024, "15M"),
        (3 * 1024**3 + 512 * 1024**2, "3.5G"),
    ],
)
def test_human_size(num_bytes: int, expected: str) -> None:
    assert human_size(num_bytes) == expected


def test_generate_readmes_layout(software_dir: Path) -> None:
    ru_dir = software_dir / "amd64" / "RU_19.27.0.0"
    ru_dir.mkdir(parents=True)
    (ru_dir / "p1_Linux-x86-64.zip").write_bytes(b"abc")

    result = generate_readmes(software_dir)

    rels = sorted(p.relative_to(software_dir).as_posix() for p in result.written)
    assert rels == [
        "README.md",
        "amd64/README.md",
        "amd64/RU_19.27.0.0/README.md",
        "amd64/base/README.md",
        "arm64/README.md",
        "arm64/base/README.md",
        "generic/README.md",
    ]
    root_text = (software_dir / "README.md").read_text(encoding="utf-8")
    assert root_text.startswith("# Oracle Database 19c Software Packages")

    ru_text = (ru_dir / "README.md").read_text(encoding="utf-8")
    digest = hashlib.sha256(b"abc").hexdigest()
    assert "# Oracle 19c RU_19.27.0.0 (AMD64)" in ru_text
    assert "`../../oracle_package_names_amd64_19.27.0.0`" in ru_text
    assert f"- `p1_Linux-x86-64.zip` - 3B - SHA256: `{digest}`" in ru_text


def test_generate_readmes_skips_existing_without_force(software_dir: Path) -> None:
    first = generate_readmes(software_dir, with_hash=False)
    assert first.skipped == []

    (software_dir / "README.md").write_text("custom\n", encoding="utf-8")
    second = generate_readmes(software_dir, with_hash=False)
    assert second.written == []
    assert (software_dir / "README.md").read_text(encoding="utf-8") == "custom\n"

    third = generate_readmes(software_dir, force=True, with_hash=False)
    assert len(third.written) == len(first.written)
    assert (software_dir / "README.md").read_text(encoding="utf-8") != "custom\n"


def test_ru_readme_without_files_or_hash(tmp_path: Path) -> None:
    ru_dir = tmp_path / "RU_19.26.0.0"
    ru_dir.mkdir()
    text = ru_readme(Arch.ARM64, ru_dir, "19c", checksum=None)
    assert "_(No files found in this RU directory.)_" in text

    (ru_dir / "p2_Linux-ARM-64.zip").write_bytes(b"x" * 10)
    text = ru_readme(Arch.ARM64, ru_dir, "19c", checksum=None)
    assert "- `p2_Linux-ARM-64.zip` - 10B" in text
    assert "SHA256" not in text


def test_cli_readme_versions(tmp_path: Path, capsys) -> None:
    (tmp_path / "19c" / "software").mkdir(parents=True)
    main(["readme", "--root", str(tmp_path), "--versions", "19c,23ai", "--no-hash"])

    captured = capsys.readouterr()
    assert "Wrote: " in captured.out
    assert f"Done: {(tmp_path / '19c' / 'software').as_posix()}" in captured.out
    assert "Warning: software directory not found, skipping" in captured.err
    assert (tmp_path / "19c" / "software" / "generic" / "README.md").is_file()
    assert not (tmp_path / "23ai").exists()
