# tests/test_package_contracts.py
"""
Structural contract tests for django-barcodes.

These tests enforce invariants that unit tests don't catch:
- Layering: pure modules never import the ORM layer
- Version consistency (__init__.py vs pyproject.toml)
- AUTH_USER_MODEL usage (not direct User imports)
- No eager model imports in __init__.py
- Issued codes and lots are never deleted through a cascade
"""
from __future__ import annotations

import ast
import re
from pathlib import Path
from typing import Set

import pytest

ROOT_DIR = Path(__file__).parent.parent
SRC_DIR = ROOT_DIR / "src" / "django_barcodes"

# Modules that must import without a configured Django app registry
PURE_MODULES = ["allocator", "context", "results", "exceptions"]

ORM_MODULES = {"models", "repositories", "formats", "scanning", "services"}


def get_imports_from_file(path: Path) -> Set[str]:
    """Extract the django_barcodes submodules a file imports."""
    tree = ast.parse(path.read_text())

    imports = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.ImportFrom) and node.module:
            if node.module == "django_barcodes":
                imports.update(alias.name for alias in node.names)
            elif node.module.startswith("django_barcodes."):
                imports.add(node.module.split(".")[1])
        elif isinstance(node, ast.Import):
            for alias in node.names:
                if alias.name.startswith("django_barcodes."):
                    imports.add(alias.name.split(".")[1])
    return imports


@pytest.mark.parametrize("module", PURE_MODULES)
def test_pure_modules_skip_orm(module):
    """Pure modules cannot import models, repositories or services."""
    imports = get_imports_from_file(SRC_DIR / f"{module}.py")
    assert not imports & ORM_MODULES, f"{module}.py imports {sorted(imports & ORM_MODULES)}"


def test_version_consistency():
    """__init__.py __version__ must match pyproject.toml version."""
    pyproject_text = (ROOT_DIR / "pyproject.toml").read_text()
    init_text = (SRC_DIR / "__init__.py").read_text()

    pyproject_version = re.search(r'^version\s*=\s*["\']([^"\']+)["\']', pyproject_text, re.MULTILINE)
    init_version = re.search(r'__version__\s*=\s*["\']([^"\']+)["\']', init_text)

    assert pyproject_version and init_version
    assert pyproject_version.group(1) == init_version.group(1)


def test_uses_auth_user_model_not_direct_import():
    """
    Use settings.AUTH_USER_MODEL, not direct User imports.

    Direct imports break swappable user model support.
    """
    violations = [
        py_file.name
        for py_file in SRC_DIR.rglob("*.py")
        if re.search(r'from django\.contrib\.auth\.models import.*\bUser\b', py_file.read_text())
    ]
    assert not violations, f"Direct User imports in: {violations}"


def test_init_has_no_eager_model_imports():
    """Eager model imports in __init__.py cause AppRegistryNotReady."""
    source = (SRC_DIR / "__init__.py").read_text()
    assert not re.search(r'^from (\.|django_barcodes\.)models import', source, re.MULTILINE)


def test_issued_codes_never_cascade():
    """
    Foreign keys use PROTECT or SET_NULL.

    Deleting a format, a lot or a user must never delete issued codes.
    """
    source = (SRC_DIR / "models.py").read_text()
    assert "on_delete=models.CASCADE" not in source


def test_migration_present():
    """Schema changes ship as migrations."""
    assert (SRC_DIR / "migrations" / "0001_initial.py").exists()
