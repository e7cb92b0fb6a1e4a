from __future__ import annotations

MANIFEST_PREFIX = "oracle_package_names"

KEY_BASE = "DB_BASE_PKG"
KEY_PATCH = "DB_PATCH_PKG"
KEY_OJVM = "DB_OJVM_PKG"
KEY_OPATCH = "DB_OPATCH_PKG"
KEY_JDKPATCH = "DB_JDKPATCH_PKG"
KEY_PERLPATCH = "DB_PERLPATCH_PKG"
KEY_ONEOFFS = "DB_ONEOFF_PKGS"

MANIFEST_KEYS: tuple[str, ...] = (
    KEY_BASE,
    KEY_PATCH,
    KEY_OJVM,
    KEY_OPATCH,
    KEY_JDKPATCH,
    KEY_PERLPATCH,
    KEY_ONEOFFS,
)
PACKAGE_KEY_SUFFIX = "_PKG"

FILE_LABEL = "File:"
LOCATED_MARKER = " - LOCATED"
RU_HEADER = "DATABASE RELEASE UPDATE"

SUFFIX_ARM64 = "Linux-ARM-64.zip"
SUFFIX_AMD64 = "Linux-x86-64.zip"
SUFFIX_GENERIC = "Generic.zip"

DEFAULT_LOG_PATTERN = "autoupgrade*.txt"
DEFAULT_BASE_AMD64 = "LINUX.X64_193000_db_home.zip"
DEFAULT_BASE_ARM64 = "LINUX.ARM64_190000_db_home.zip"

BASE_DIR_NAME = "base"
RU_DIR_PREFIX = "RU_"
GENERIC_DIR_NAME = "generic"

DOCKERIGNORE_NAME = ".dockerignore"
DOCKERIGNORE_BACKUP_SUFFIX = ".bak"
DOCKERIGNORE_HEADER = "# Auto-generated by orastage; removed again by `orastage clean`."

README_NAME = "README.md"
