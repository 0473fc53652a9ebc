"""Architecture enforcement tests for the chatcompat package layout.

Lightweight, repository-local invariants keeping the layers decoupled. They
focus on import boundaries only and fail fast if a forbidden dependency is
introduced.

Rules validated here:
1) ``chatcompat.config`` must not import ``chatcompat.base``.
   - Configuration is the innermost layer; the client reads it, never the
     other way round.
2) Library modules must not import the test helpers under ``chatcompat/tests``.
3) Library modules must not import vendor SDKs or a second HTTP stack.
   - All wire traffic goes through ``httpx`` behind the transport boundary.

These tests are static-file scans to avoid import-time side effects, and they
emit clear failure messages for quick remediation.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, List

import pytest

PACKAGE_ROOT = Path(__file__).resolve().parent.parent / "chatcompat"


def _iter_python_files(root: Path) -> Iterable[Path]:
    """Yield all Python source files under a root directory.

    Parameters
    ----------
    root: Path
        The directory to scan recursively.

    Yields
    ------
    Path
        Paths to ``.py`` files under the provided root, skipping bytecode
        caches and the package's own tests.
    """

    for path in root.rglob("*.py"):
        if "__pycache__" in path.parts or "tests" in path.relative_to(PACKAGE_ROOT).parts:
            continue
        yield path


def _import_lines(path: Path) -> List[str]:
    text = path.read_text(encoding="utf-8", errors="replace")
    return [ln.strip() for ln in text.splitlines() if re.match(r"\s*(from|import)\s", ln)]


def _scan(root: Path, forbidden: Iterable[str]) -> List[str]:
    patterns = [re.compile(p) for p in forbidden]
    offenders: List[str] = []
    for py in _iter_python_files(root):
        for line in _import_lines(py):
            offenders.extend(f"{py}: '{line}'" for p in patterns if p.search(line))
    return offenders


@pytest.fixture(scope="module")
def package_root() -> Path:
    if not PACKAGE_ROOT.is_dir():
        pytest.skip("chatcompat package not found next to tests/; skipping boundary checks")
    return PACKAGE_ROOT


def test_config_does_not_import_base(package_root: Path) -> None:
    offenders = _scan(
        package_root / "config",
        [r"^from\s+\.\.base\b", r"^from\s+chatcompat\.base\b", r"^import\s+chatcompat\.base\b"],
    )
    if offenders:
        pytest.fail("chatcompat.config must not depend on chatcompat.base.\n" + "\n".join(offenders))


def test_library_does_not_import_tests(package_root: Path) -> None:
    offenders = _scan(
        package_root,
        [r"^from\s+\.+tests\b", r"^from\s+chatcompat\.tests\b", r"^import\s+chatcompat\.tests\b"],
    )
    if offenders:
        pytest.fail("Library modules must not import test helpers.\n" + "\n".join(offenders))


def test_library_uses_single_http_stack(package_root: Path) -> None:
    sdks = ("openai", "anthropic", "requests", "aiohttp", "urllib3")
    offenders = _scan(
        package_root,
        [rf"^(from|import)\s+{name}\b" for name in sdks],
    )
    if offenders:
        pytest.fail("Wire traffic must go through httpx; vendor SDK imports found.\n" + "\n".join(offenders))
