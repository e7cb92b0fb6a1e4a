from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from orastage.cli import main
from orastage.manifest import PackageManifest, write_manifest

RU = "19.27.0.0"


def _touch(path: Path, data: bytes = b"zip") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    return path


@pytest.fixture
def staged_project(project: Path, software_dir: Path) -> Path:
    _touch(software_dir / "arm64" / "base" / "base.zip")
    _touch(software_dir / "arm64" / f"RU_{RU}" / "ru.zip")
    _touch(project / "19c" / "docker" / "Dockerfile.base", b"FROM scratch\n")
    write_manifest(
        software_dir / f"oracle_package_names_arm64_{RU}",
        PackageManifest(base="base.zip", patch="ru.zip", ojvm="ojvm_missing.zip"),
    )
    return project


def test_stage_copies_and_prints_context(staged_project: Path, capsys) -> None:
    main(
        [
            "stage",
            "-a",
            "arm64",
            "-r",
            RU,
            "--root",
            str(staged_project),
            "--print-context",
        ]
    )

    captured = capsys.readouterr()
    assert "Warning: package not found in base/RU sources: ojvm_missing.zip" in (
        captured.err
    )
    assert "Info: Staged 2 of 3 package(s)" in captured.err
    listed = [ln.strip() for ln in captured.out.splitlines()[1:]]
    assert listed == [
        ".swstage/arm64/RU_19.27.0.0/ru.zip",
        ".swstage/arm64/base/base.zip",
        "docker/Dockerfile.base",
        f"software/oracle_package_names_arm64_{RU}",
    ]
    assert (staged_project / "19c" / ".dockerignore").is_file()


def test_stage_missing_package_list(project: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["stage", "-a", "amd64", "-r", RU, "--root", str(project)])
    assert excinfo.value.code == 2
    assert "stage: package list not found" in capsys.readouterr().err


def test_stage_dry_run_writes_nothing(staged_project: Path) -> None:
    main(["stage", "-a", "arm64", "-r", RU, "--root", str(staged_project), "-n"])
    assert not (staged_project / "19c" / ".swstage").exists()
    assert not (staged_project / "19c" / ".dockerignore").exists()


def test_clean_after_stage(staged_project: Path, capsys) -> None:
    main(["stage", "-a", "arm64", "-r", RU, "--root", str(staged_project)])
    capsys.readouterr()

    main(["clean", "--root", str(staged_project)])
    out = capsys.readouterr().out
    assert "Removed" in out
    assert not (staged_project / "19c" / ".swstage").exists()
    assert not (staged_project / "19c" / ".dockerignore").exists()

    main(["clean", "--root", str(staged_project)])
    assert "Nothing to clean." in capsys.readouterr().out


def test_build_dry_run_prints_command(staged_project: Path, capsys) -> None:
    main(
        [
            "build",
            "-a",
            "arm64",
            "-r",
            RU,
            "-t",
            "builder",
            "--root",
            str(staged_project),
            "-n",
        ]
    )
    out = capsys.readouterr().out
    assert out.startswith("Dry run: (cd ")
    assert "docker build --file docker/Dockerfile.base" in out
    assert "--build-arg TARGETARCH=arm64" in out
    assert f"--tag oracle-db:{RU}-arm64" in out
    assert "--platform linux/arm64 --target builder ." in out
    assert not (staged_project / "19c" / ".swstage").exists()


def test_build_runs_builder_and_cleans_up(
    staged_project: Path, monkeypatch, capsys
) -> None:
    calls: list[tuple[list[str], Path]] = []

    def _fake_run(cmd, cwd=None, check=False):
        calls.append((list(cmd), Path(cwd)))
        # The staged files must be present while the builder runs.
        assert (Path(cwd) / ".swstage" / "arm64" / "base" / "base.zip").exists()
        return subprocess.CompletedProcess(cmd, 0)

    monkeypatch.setattr(subprocess, "run", _fake_run)
    main(["build", "-a", "arm64", "-r", RU, "--root", str(staged_project), "-x"])

    assert len(calls) == 1
    cmd, cwd = calls[0]
    assert cmd[:3] == ["docker", "buildx", "build"]
    assert cwd == (staged_project / "19c").resolve()
    assert "Build complete" in capsys.readouterr().out
    assert not (staged_project / "19c" / ".swstage").exists()
    assert not (staged_project / "19c" / ".dockerignore").exists()


def test_build_failure_exits_one_and_cleans_up(
    staged_project: Path, monkeypatch, capsys
) -> None:
    def _fail_run(cmd, cwd=None, check=False):
        raise subprocess.CalledProcessError(1, cmd)

    monkeypatch.setattr(subprocess, "run", _fail_run)
    with pytest.raises(SystemExit) as excinfo:
        main(["build", "-a", "arm64", "-r", RU, "--root", str(staged_project)])
    assert "exited with status 1" in str(excinfo.value.code)
    assert not (staged_project / "19c" / ".swstage").exists()


def test_build_requires_dockerfile(project: Path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["build", "-a", "amd64", "-r", RU, "--root", str(project)])
    assert excinfo.value.code == 2
    assert "build: Dockerfile not found" in capsys.readouterr().err


def test_stage_refuses_to_overwrite_dockerignore_backup(
    staged_project: Path, capsys
) -> None:
    context = staged_project / "19c"
    (context / ".dockerignore").write_text("*.log\n", encoding="utf-8")
    (context / ".dockerignore.bak").write_text("mine\n", encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        main(["stage", "-a", "arm64", "-r", RU, "--root", str(staged_project)])
    assert excinfo.value.code == 2
    assert ".dockerignore.bak already exists" in capsys.readouterr().err
    assert not (context / ".swstage").exists()
    assert (context / ".dockerignore.bak").read_text(encoding="utf-8") == "mine\n"


def test_stage_list_outside_context_is_rejected(tmp_path: Path, capsys) -> None:
    media = tmp_path / "media"
    media.mkdir()
    write_manifest(
        media / f"oracle_package_names_amd64_{RU}", PackageManifest(base="base.zip")
    )
    (tmp_path / "19c").mkdir()
    (tmp_path / "orastage.toml").write_text(
        '[orastage]\nsoftware_dir = "media"\n', encoding="utf-8"
    )

    with pytest.raises(SystemExit) as excinfo:
        main(["stage", "-a", "amd64", "-r", RU, "--root", str(tmp_path)])
    assert excinfo.value.code == 2
    assert "package list must be inside the build context" in capsys.readouterr().err
    assert not (tmp_path / "19c" / ".swstage").exists()
