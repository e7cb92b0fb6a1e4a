from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .formats import DEFAULT_BASE_AMD64, DEFAULT_BASE_ARM64, DEFAULT_LOG_PATTERN
from .model import Arch

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # pyright: ignore[reportMissingImports]

CONFIG_FILENAMES: tuple[str, ...] = (".orastage.toml", "orastage.toml")
PYPROJECT_FILENAME = "pyproject.toml"

DEFAULT_CONTEXT_INCLUDE: list[str] = ["docker/**"]


@dataclass
class Config:
    # Version folder under the project root, e.g. "19c" or "23ai".
    product: str = "19c"
    # Empty means <root>/<product>/software.
    software_dir: str = ""
    base_package_amd64: str = DEFAULT_BASE_AMD64
    base_package_arm64: str = DEFAULT_BASE_ARM64
    log_pattern: str = DEFAULT_LOG_PATTERN
    release: str = "19.0.0.0"
    # Relative to the product directory, which is also the build context.
    dockerfile: str = "docker/Dockerfile.base"
    image_repo: str = "oracle-db"
    # Staging folder name inside the build context.
    stage_dir: str = ".swstage"
    # Extra build-context paths (gitignore-style) kept next to the staged files.
    context_include: list[str] = field(
        default_factory=lambda: DEFAULT_CONTEXT_INCLUDE.copy()
    )
    use_buildx: bool = False
    keep_stage: bool = False
    # SHA-256 lines in README inventories (advisory only).
    hash_readmes: bool = True

    def base_package(self, arch: Arch) -> str:
        if arch is Arch.ARM64:
            return self.base_package_arm64
        return self.base_package_amd64

    def product_dir(self, root: Path) -> Path:
        return root / self.product

    def resolve_software_dir(self, root: Path) -> Path:
        if self.software_dir:
            p = Path(self.software_dir).expanduser()
            return p if p.is_absolute() else root / p
        return self.product_dir(root) / "software"


def find_config_path(root: Path) -> Path | None:
    root = root.resolve()
    for name in CONFIG_FILENAMES:
        p = root / name
        if p.exists():
            return p
    pyproject = root / PYPROJECT_FILENAME
    if pyproject.exists():
        return pyproject
    return None


def _extract_section(data: Any, *, from_pyproject: bool) -> dict[str, Any]:
    section: dict[str, Any] = {}
    if not isinstance(data, dict):
        return section

    if not from_pyproject:
        # Preferred for dedicated config files: [orastage]
        own = data.get("orastage")
        if isinstance(own, dict):
            return own

    # Supported in all files; required for pyproject.toml.
    tool = data.get("tool")
    if isinstance(tool, dict):
        own2 = tool.get("orastage")
        if isinstance(own2, dict):
            return own2

    return section


def _str_value(section: dict[str, Any], key: str, default: str) -> str:
    value = section.get(key, default)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def load_config(root: Path) -> Config:
    cfg_path = find_config_path(root)
    if cfg_path is None:
        return Config()

    data = tomllib.loads(cfg_path.read_text(encoding="utf-8"))
    section = _extract_section(data, from_pyproject=cfg_path.name == PYPROJECT_FILENAME)
    cfg = Config()

    cfg.product = _str_value(section, "product", cfg.product).strip("/")
    cfg.software_dir = _str_value(section, "software_dir", cfg.software_dir)
    cfg.base_package_amd64 = _str_value(
        section, "base_package_amd64", cfg.base_package_amd64
    )
    cfg.base_package_arm64 = _str_value(
        section, "base_package_arm64", cfg.base_package_arm64
    )
    cfg.log_pattern = _str_value(section, "log_pattern", cfg.log_pattern)
    cfg.release = _str_value(section, "release", cfg.release)
    cfg.dockerfile = _str_value(section, "dockerfile", cfg.dockerfile)
    cfg.image_repo = _str_value(section, "image_repo", cfg.image_repo)

    stage_dir = _str_value(section, "stage_dir", cfg.stage_dir).strip("/")
    # Must stay a single folder inside the build context.
    if stage_dir and "/" not in stage_dir and stage_dir not in {".", ".."}:
        cfg.stage_dir = stage_dir

    include = section.get("context_include")
    if isinstance(include, list):
        cfg.context_include = [str(x) for x in include]

    cfg.use_buildx = bool(section.get("use_buildx", cfg.use_buildx))
    cfg.keep_stage = bool(section.get("keep_stage", cfg.keep_stage))
    cfg.hash_readmes = bool(section.get("hash_readmes", cfg.hash_readmes))
    return cfg
