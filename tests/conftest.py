"""Root-level test configuration for gwconf.

Root-level tests check cross-cutting contracts (the report format consumed
by certification tooling). Package-specific tests belong in
packages/gwconf-core/tests/.
"""

from __future__ import annotations

from pathlib import Path


# Early PYTHONPATH check for better error messages
def _check_test_environment() -> None:
    """Verify tests are run from correct directory with proper PYTHONPATH."""
    try:
        import gwconf_core as _gc
    except ImportError:
        cwd = Path.cwd()
        if cwd.name in ("gwconf-core", "packages", "tests"):
            raise ImportError(
                f"Tests must be run from the repository root, not from {cwd}.\n"
                f"Run: cd {cwd.parent} && pytest tests/"
            ) from None
        raise ImportError(
            "gwconf_core not found. Install the project (pip install -e .) "
            "or run pytest from the repository root."
        ) from None
    _ = _gc.__name__


_check_test_environment()

import pytest  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "contract: Cross-package contract tests for the conformance report format",
    )


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Path to the repository root."""
    return Path(__file__).parent.parent
