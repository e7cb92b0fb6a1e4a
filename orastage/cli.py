from __future__ import annotations

import argparse
import importlib.metadata as importlib_metadata
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

from .build import (
    BuildOptions,
    build_command,
    default_image_tag,
    format_command,
    run_build,
)
from .config import Config, load_config
from .errors import BuildError, OrastageError, ResolutionWarning, WriteError
from .model import Arch
from .names import generate_package_names
from .readmes import generate_readmes
from .stager import (
    StageResult,
    check_dockerignore_backup,
    cleanup_stage,
    context_files,
    dockerignore_for_stage,
    find_package_list,
    stage_packages,
    write_dockerignore,
)

ARCH_CHOICES = [arch.value for arch in Arch]


def _orastage_version() -> str:
    try:
        return importlib_metadata.version("orastage")
    except importlib_metadata.PackageNotFoundError:
        return "0+unknown"


def _add_root_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--root",
        type=Path,
        default=Path("."),
        help="Project root holding <product>/ folders and config (default: .)",
    )


def _add_product_arg(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-p",
        "--product",
        default=None,
        help="Product folder under the root, e.g. 19c or 23ai (default: config)",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="orastage",
        description=(
            "Package lists, software READMEs and minimal build contexts for "
            "Oracle Database Docker images."
        ),
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"orastage {_orastage_version()}",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    # names
    names = sub.add_parser(
        "names",
        help="Generate oracle_package_names_<arch>_<RU> from an AutoUpgrade log.",
    )
    names.add_argument(
        "input_file",
        type=Path,
        nargs="?",
        help=(
            "AutoUpgrade patch download log. If omitted, the newest "
            "autoupgrade*.txt in the software directory is used."
        ),
    )
    _add_product_arg(names)
    names.add_argument(
        "-o",
        "--software-dir",
        type=Path,
        default=None,
        help="Software directory (default: <root>/<product>/software)",
    )
    names.add_argument(
        "-r",
        "--ru",
        default=None,
        help="RU version for output filenames, e.g. 19.27.0.0 (default: parsed)",
    )
    names.add_argument(
        "--base-amd64",
        default=None,
        help="Base media filename for AMD64 (default: config)",
    )
    names.add_argument(
        "--base-arm64",
        default=None,
        help="Base media filename for ARM64 (default: config)",
    )
    names.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing oracle_package_names_* files.",
    )
    names.add_argument(
        "--print-skipped",
        action="store_true",
        help="Debug: print file names without a known platform suffix",
    )
    _add_root_arg(names)

    # stage / build share the staging options
    def add_stage_args(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("-a", "--arch", choices=ARCH_CHOICES, required=True)
        sp.add_argument(
            "-r",
            "--ru",
            required=True,
            help="Release Update, e.g. 19.27.0.0",
        )
        sp.add_argument(
            "-S",
            "--source",
            type=Path,
            default=None,
            help=(
                "External software source root containing <arch>/base and "
                "<arch>/RU_<RU> (default: the software directory)"
            ),
        )
        _add_product_arg(sp)
        sp.add_argument(
            "--context-include",
            action="append",
            default=None,
            help="Extra build-context path to allow (repeatable; default: config)",
        )
        _add_root_arg(sp)

    stage = sub.add_parser(
        "stage",
        help="Stage the packages of one package list and write .dockerignore.",
    )
    add_stage_args(stage)
    stage.add_argument(
        "--print-context",
        action="store_true",
        help="Print the files the builder would receive from the context",
    )
    stage.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Resolve packages only; copy nothing and write nothing",
    )

    build = sub.add_parser(
        "build",
        help="Stage packages, run the image build, then clean up.",
    )
    add_stage_args(build)
    build.add_argument(
        "-R",
        "--release",
        default=None,
        help="Oracle release, e.g. 19.0.0.0 (default: config)",
    )
    build.add_argument(
        "-d",
        "--dockerfile",
        default=None,
        help="Dockerfile path relative to the product folder (default: config)",
    )
    build.add_argument(
        "-t",
        "--target",
        default="",
        help="Build target, e.g. 'builder' to stop after that stage",
    )
    build.add_argument(
        "-i",
        "--image",
        default=None,
        help="Image tag (default: <image_repo>:<RU>-<arch>)",
    )
    build.add_argument(
        "-x",
        "--buildx",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Use docker buildx (default: off via config)",
    )
    build.add_argument(
        "-k",
        "--keep-stage",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Keep the stage folder and .dockerignore after the build",
    )
    build.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Print the actions only",
    )

    clean = sub.add_parser(
        "clean",
        help="Remove the stage folder and restore the previous .dockerignore.",
    )
    _add_product_arg(clean)
    _add_root_arg(clean)

    # readme
    readme = sub.add_parser(
        "readme",
        help="Generate README.md inventories for software directories.",
    )
    readme.add_argument(
        "software_dir",
        type=Path,
        nargs="?",
        help="Software directory (default: <root>/<product>/software)",
    )
    _add_product_arg(readme)
    readme.add_argument(
        "--versions",
        default=None,
        help="Comma-separated product folders under the root, e.g. 19c,23ai",
    )
    readme.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing README.md files.",
    )
    readme.add_argument(
        "--hash",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Include SHA-256 checksums (default: on via config; --no-hash is faster)",
    )
    _add_root_arg(readme)

    return p


def _print_top_level_help(parser: argparse.ArgumentParser) -> None:
    parser.print_help()
    print()
    print("Quick start examples:")
    print("  orastage names -p 19c")
    print("  orastage stage -a arm64 -r 19.27.0.0 --print-context")
    print("  orastage build -a amd64 -r 19.27.0.0 -t builder -n")
    print("  orastage clean")
    print("  orastage readme --versions 19c,23ai")


def _info(label: str, value: object) -> None:
    print(f"Info: {label:<18}: {value}", file=sys.stderr)


def _fail(
    parser: argparse.ArgumentParser, command: str, error: OrastageError
) -> NoReturn:
    if isinstance(error, (WriteError, BuildError)):
        raise SystemExit(f"{command}: {error}") from error
    parser.error(f"{command}: {error}")


def _emit_resolution_warnings(warnings: list[ResolutionWarning]) -> None:
    for w in warnings:
        print(f"Warning: {w.message}", file=sys.stderr)


def _emit_skipped_names(skipped: list[str], *, verbose: bool) -> None:
    if not skipped:
        return
    if verbose:
        print("Debug: file names without a known platform suffix:", file=sys.stderr)
        for name in skipped:
            print(f"  - {name}", file=sys.stderr)
        return
    preview = ", ".join(skipped[:5])
    suffix = "" if len(skipped) <= 5 else ", ..."
    print(
        f"Warning: ignored {len(skipped)} file(s) without a known platform "
        f"suffix: {preview}{suffix}",
        file=sys.stderr,
    )


def _apply_product(cfg: Config, product: str | None) -> Config:
    if product:
        cfg.product = product.strip("/")
    return cfg


@dataclass(frozen=True)
class _StagePlan:
    arch: Arch
    ru: str
    context_dir: Path
    software_dir: Path
    source_root: Path
    stage_root: Path
    context_include: list[str]


def _stage_plan(cfg: Config, root: Path, args: argparse.Namespace) -> _StagePlan:
    context_dir = cfg.product_dir(root)
    software_dir = cfg.resolve_software_dir(root)
    include = args.context_include
    return _StagePlan(
        arch=Arch(args.arch),
        ru=args.ru.strip(),
        context_dir=context_dir,
        software_dir=software_dir,
        source_root=(args.source or software_dir),
        stage_root=context_dir / cfg.stage_dir,
        context_include=list(include) if include is not None else cfg.context_include,
    )


def _run_stage(plan: _StagePlan, *, dry_run: bool) -> tuple[StageResult, str]:
    manifest_path = find_package_list(plan.software_dir, plan.arch, plan.ru)
    _info("Package list", manifest_path)
    _info("Source root", plan.source_root)
    _info("Stage dir", plan.stage_root)

    ignore_text = dockerignore_for_stage(
        context_dir=plan.context_dir,
        stage_root=plan.stage_root,
        arch=plan.arch,
        manifest_path=manifest_path,
        extra_allow=plan.context_include,
    )
    if not dry_run:
        check_dockerignore_backup(plan.context_dir)

    result = stage_packages(
        manifest_path,
        source_root=plan.source_root,
        stage_root=plan.stage_root,
        arch=plan.arch,
        ru=plan.ru,
        dry_run=dry_run,
    )
    _emit_resolution_warnings(result.warnings)

    if not dry_run:
        write_dockerignore(plan.context_dir, ignore_text)
    verb = "Would stage" if dry_run else "Staged"
    print(
        f"Info: {verb} {len(result.staged)} of {len(result.required)} package(s)",
        file=sys.stderr,
    )
    return result, ignore_text


def main(argv: list[str] | None = None) -> None:  # noqa: C901
    parser = build_parser()
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    if not raw_argv:
        _print_top_level_help(parser)
        return

    args = parser.parse_args(raw_argv)
    root = args.root.resolve()
    cfg = _apply_product(load_config(root), args.product)

    if args.cmd == "names":
        software_dir = (args.software_dir or cfg.resolve_software_dir(root)).resolve()
        base_packages = {
            Arch.AMD64: args.base_amd64 or cfg.base_package(Arch.AMD64),
            Arch.ARM64: args.base_arm64 or cfg.base_package(Arch.ARM64),
        }
        _info("Root", root)
        _info("Product", cfg.product)
        _info("Software dir", software_dir)
        _info("Base AMD64", base_packages[Arch.AMD64])
        _info("Base ARM64", base_packages[Arch.ARM64])
        try:
            result = generate_package_names(
                software_dir,
                input_file=args.input_file,
                ru=args.ru,
                base_packages=base_packages,
                force=bool(args.force),
                log_pattern=cfg.log_pattern,
            )
        except OrastageError as e:
            _fail(parser, "names", e)
        _info("Input file", result.input_file)
        _info("RU version", result.ru)
        _emit_skipped_names(result.classification.skipped, verbose=args.print_skipped)
        print("Created:")
        for path in result.outputs.values():
            print(f"  {path.as_posix()}")

    elif args.cmd == "stage":
        plan = _stage_plan(cfg, root, args)
        try:
            result, ignore_text = _run_stage(plan, dry_run=bool(args.dry_run))
        except OrastageError as e:
            _fail(parser, "stage", e)
        if args.print_context:
            print(f"Build context files for {plan.context_dir.as_posix()}:")
            for rel in context_files(plan.context_dir, ignore_text.splitlines()):
                print(f"  {rel}")
        elif not args.dry_run:
            print(f"Staged packages under {result.stage_root.as_posix()}")

    elif args.cmd == "build":
        plan = _stage_plan(cfg, root, args)
        dockerfile = args.dockerfile or cfg.dockerfile
        dockerfile_path = plan.context_dir / dockerfile
        if not dockerfile_path.is_file():
            parser.error(f"build: Dockerfile not found: {dockerfile_path}")
        buildx = cfg.use_buildx if args.buildx is None else bool(args.buildx)
        keep = cfg.keep_stage if args.keep_stage is None else bool(args.keep_stage)
        opts = BuildOptions(
            arch=plan.arch,
            release=args.release or cfg.release,
            release_update=plan.ru,
            dockerfile=dockerfile,
            tag=args.image or default_image_tag(cfg.image_repo, plan.ru, plan.arch),
            target=args.target,
            buildx=buildx,
        )
        cmd = build_command(opts)
        try:
            _run_stage(plan, dry_run=bool(args.dry_run))
        except OrastageError as e:
            _fail(parser, "build", e)

        _info("Image", opts.tag)
        _info("Dockerfile", dockerfile_path)
        _info("Context", plan.context_dir)
        _info("Target", opts.target or "final")
        _info("Platform", f"linux/{plan.arch.value}")
        if args.dry_run:
            print(f"Dry run: {format_command(cmd, plan.context_dir)}")
            return

        try:
            run_build(cmd, plan.context_dir)
        except BuildError as e:
            _fail(parser, "build", e)
        finally:
            if keep:
                _info("Kept stage", plan.stage_root)
            else:
                cleanup_stage(plan.stage_root, plan.context_dir)
                print("Info: cleaned stage folder and .dockerignore", file=sys.stderr)
        print(f"Build complete: {opts.tag}")

    elif args.cmd == "clean":
        context_dir = cfg.product_dir(root)
        removed = cleanup_stage(context_dir / cfg.stage_dir, context_dir)
        if not removed:
            print("Nothing to clean.")
        for path in removed:
            print(f"Removed {path.as_posix()}")

    elif args.cmd == "readme":
        if args.versions:
            versions = [v.strip() for v in args.versions.split(",") if v.strip()]
            software_dirs = [root / v / "software" for v in versions]
        else:
            software_dirs = [args.software_dir or cfg.resolve_software_dir(root)]
        with_hash = cfg.hash_readmes if args.hash is None else bool(args.hash)
        for software_dir in software_dirs:
            if not software_dir.is_dir():
                print(
                    f"Warning: software directory not found, skipping: {software_dir}",
                    file=sys.stderr,
                )
                continue
            try:
                res = generate_readmes(
                    software_dir, force=bool(args.force), with_hash=with_hash
                )
            except OSError as e:
                raise SystemExit(f"readme: {software_dir}: {e}") from e
            for path in res.written:
                print(f"Wrote: {path.as_posix()}")
            for path in res.skipped:
                print(f"SKIP (exists): {path.as_posix()}")
            print(f"Done: {software_dir.as_posix()}")


if __name__ == "__main__":
    main()
