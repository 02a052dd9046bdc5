"""
Kernel Boundary & Invariants Contract.

Tests that enforce the kernel's architectural boundaries:

1. clinic_kernel/** may NOT import clinic_config.  Configuration is
   bridged in from outside (clinic_config.bridges); the kernel never
   depends upward.

2. clinic_kernel/domain/** stays pure: no ORM or database imports.

3. Only InventoryPool writes stock, and only CostAggregator writes the
   consultation total.

4. The kernel invariants declaration is complete and non-empty.

These tests read source code via AST -- they cannot break anything.
"""

import ast
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[2]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _python_files(root: str) -> list[Path]:
    """Return all .py files under ``root`` (relative to the repo root)."""
    return sorted((REPO_ROOT / root).rglob("*.py"))


def _rel(path: Path) -> str:
    return path.relative_to(REPO_ROOT).as_posix()


def _extract_imports(filepath: Path) -> list[tuple[int, str]]:
    """Extract (line_number, module_string) for all imports in a file."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))

    results: list[tuple[int, str]] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                results.append((node.lineno, alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.module:
                results.append((node.lineno, node.module))
    return results


def _attribute_writes(filepath: Path, attribute: str) -> list[int]:
    """Line numbers of ``<expr>.<attribute> = ...`` assignments, ignoring ``self``."""
    tree = ast.parse(filepath.read_text(), filename=str(filepath))
    lines: list[int] = []
    for node in ast.walk(tree):
        targets: list[ast.expr] = []
        if isinstance(node, ast.Assign):
            targets = node.targets
        elif isinstance(node, (ast.AugAssign, ast.AnnAssign)):
            targets = [node.target]
        for target in targets:
            if (
                isinstance(target, ast.Attribute)
                and target.attr == attribute
                and not (isinstance(target.value, ast.Name) and target.value.id == "self")
            ):
                lines.append(node.lineno)
    return lines


# ---------------------------------------------------------------------------
# Test: Kernel has no upward dependencies
# ---------------------------------------------------------------------------

class TestKernelNoUpwardDependencies:
    """clinic_kernel/** must not import clinic_config."""

    def test_kernel_does_not_import_forbidden_packages(self):
        from clinic_kernel.invariants import FORBIDDEN_KERNEL_IMPORTS

        violations: list[str] = []
        for filepath in _python_files("clinic_kernel"):
            for lineno, module in _extract_imports(filepath):
                for prefix in FORBIDDEN_KERNEL_IMPORTS:
                    if module == prefix or module.startswith(f"{prefix}."):
                        violations.append(f"  {_rel(filepath)}:{lineno} imports '{module}'")

        assert not violations, (
            "Kernel boundary violation: clinic_kernel/** must not import "
            "upward packages:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# Test: Kernel domain purity
# ---------------------------------------------------------------------------

class TestKernelDomainPurity:
    """clinic_kernel/domain/** must not import ORM or DB packages."""

    FORBIDDEN_MODULES = (
        "sqlalchemy",
        "psycopg2",
        "sqlite3",
        "clinic_kernel.db",
        "clinic_kernel.models",
        "clinic_kernel.services",
    )

    def test_domain_no_orm_imports(self):
        violations: list[str] = []

        for filepath in _python_files("clinic_kernel/domain"):
            for lineno, module in _extract_imports(filepath):
                for forbidden in self.FORBIDDEN_MODULES:
                    if module == forbidden or module.startswith(f"{forbidden}."):
                        violations.append(f"  {_rel(filepath)}:{lineno} imports '{module}'")

        assert not violations, (
            "Domain purity violation: clinic_kernel/domain/** must not "
            "import ORM/DB packages:\n" + "\n".join(violations)
        )


# ---------------------------------------------------------------------------
# Test: Single writers
# ---------------------------------------------------------------------------

class TestSingleWriters:
    """Stock and totals each have exactly one writer in the kernel."""

    def _writers(self, attribute: str) -> set[str]:
        return {
            _rel(filepath)
            for filepath in _python_files("clinic_kernel")
            if _attribute_writes(filepath, attribute)
        }

    def test_only_inventory_pool_writes_stock(self):
        assert self._writers("quantity") <= {
            "clinic_kernel/services/inventory_pool.py",
        }

    def test_only_cost_aggregator_writes_total(self):
        assert self._writers("total") == {
            "clinic_kernel/services/cost_aggregator.py",
        }


# ---------------------------------------------------------------------------
# Test: Invariants declaration exists and is complete
# ---------------------------------------------------------------------------

class TestKernelInvariantsDeclaration:
    """The kernel invariants contract must be declared and complete."""

    def test_invariants_module_exists(self):
        from clinic_kernel.invariants import ALL_KERNEL_INVARIANTS

        assert len(ALL_KERNEL_INVARIANTS) > 0

    def test_required_invariants_declared(self):
        from clinic_kernel.invariants import KernelInvariant

        required = {
            "NON_NEGATIVE_STOCK",
            "TOTAL_CONSISTENCY",
            "COST_SNAPSHOT",
            "PROCEDURE_EXPANSION",
            "ATOMIC_MUTATION",
        }
        declared = {inv.name for inv in KernelInvariant}
        missing = required - declared
        assert not missing, f"Missing kernel invariants: {missing}"

    def test_forbidden_imports_declared(self):
        from clinic_kernel.invariants import FORBIDDEN_KERNEL_IMPORTS

        assert "clinic_config" in FORBIDDEN_KERNEL_IMPORTS
