from __future__ import annotations

import ast
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]

# Lower layers never reach up into the game or payout layers.
DISALLOWED_IMPORTS = {
    "apps/core": ("apps.contributions", "apps.payables", "apps.gauntlet", "apps.payments"),
    "apps/users": ("apps.contributions", "apps.payables", "apps.gauntlet", "apps.payments"),
    "apps/payments": ("apps.contributions", "apps.payables", "apps.gauntlet"),
    "apps/contributions": ("apps.gauntlet", "apps.payments", "apps.payables.services.executor"),
    "apps/payables": ("apps.gauntlet",),
}


def _iter_python_files() -> list[tuple[Path, tuple[str, ...]]]:
    files: list[tuple[Path, tuple[str, ...]]] = []
    for rel, prefixes in DISALLOWED_IMPORTS.items():
        root = BASE_DIR / rel
        if not root.exists():
            continue
        for path in root.rglob("*.py"):
            if "migrations" in path.parts or "tests" in path.parts:
                continue
            files.append((path, prefixes))
    return files


def _iter_imports(path: Path) -> list[str]:
    source = path.read_text(encoding="utf-8")
    tree = ast.parse(source, filename=str(path))
    imports: list[str] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                imports.append(alias.name)
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                imports.append(node.module)
    return imports


@pytest.mark.parametrize("path, prefixes", _iter_python_files())
def test_layers_do_not_import_upwards(path: Path, prefixes: tuple[str, ...]) -> None:
    violations = [imp for imp in _iter_imports(path) if imp.startswith(prefixes)]
    assert not violations, f"{path} imports a higher layer: {violations}"
