import os
from pathlib import Path
import nox

# Reuse existing virtualenvs for faster runs
nox.options.reuse_existing_virtualenvs = True
# Default sessions when running "nox"
nox.options.sessions = ["lint", "unit", "integration", "e2e"]

TEST_DEPS = ["-e", ".[test]"]

# Environment variables to propagate
PASSED_ENV_VARS = [
    "DATABASE_URL",
    "SECRET_KEY",
    "ENVIRONMENT",
    "TIMEZONE",
    "LOG_LEVEL",
]


def _set_env(session):
    """
    Propagate configuration variables into the session.
    Also ensure the project root is on PYTHONPATH.
    """
    session.env["PYTHONPATH"] = str(Path.cwd())
    for var in PASSED_ENV_VARS:
        if var in os.environ:
            session.env[var] = os.environ[var]


def _run_pytest(session, default_path):
    _set_env(session)
    session.install(*TEST_DEPS)
    tests = session.posargs or [default_path]
    session.run(
        "pytest",
        *tests,
        "-vv",
        "--tb=short",
        "--cov=gatepass",
        "--cov-report=term-missing",
    )


@nox.session(name="lint")
def lint(session):
    """
    Code formatting, linting, and type-checks:
      - isort
      - black
      - flake8
      - mypy
    """
    _set_env(session)
    session.install("isort", "black", "flake8", "mypy")
    session.run("isort", "gatepass/", "tests/")
    session.run("black", "gatepass/", "tests/")
    session.run("flake8", "gatepass/", "tests/")
    session.run("mypy", "gatepass/")


@nox.session(name="unit")
def unit(session):
    """
    Run unit tests (services, core helpers, client surface).
    Usage:
      nox -s unit
      nox -s unit -- tests/unit/test_services/test_transitions.py
    """
    _run_pytest(session, "tests/unit")


@nox.session(name="integration")
def integration(session):
    """Run HTTP API tests through the FastAPI TestClient."""
    _run_pytest(session, "tests/integration")


@nox.session(name="e2e")
def e2e(session):
    """Run concurrent transition races against a file-backed SQLite database."""
    _run_pytest(session, "tests/e2e")
