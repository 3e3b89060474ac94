import nox

PYTHON_VERSIONS = ["3.11", "3.12", "3.13"]


def _install(session: nox.Session) -> None:
    """Install the project with all test extras into the nox virtualenv."""
    session.run(
        "poetry",
        "install",
        "--all-extras",
        external=True,
    )


@nox.session(python=PYTHON_VERSIONS)
def tests(session: nox.Session) -> None:
    """Run full test suite across Python versions."""
    _install(session)
    session.run("pytest", *session.posargs)


@nox.session(python=PYTHON_VERSIONS)
def tests_domain(session: nox.Session) -> None:
    """Run domain-layer tests only (no network, no event loop)."""
    _install(session)
    session.run("pytest", "-m", "domain")


@nox.session(python=PYTHON_VERSIONS)
def tests_checkout(session: nox.Session) -> None:
    """Run the checkout flow end to end: orchestrator, gateway and API."""
    _install(session)
    session.run(
        "pytest",
        "tests/ordering/application/test_checkout_orchestrator.py",
        "tests/ordering/bdd/test_checkout.py",
        "tests/ordering/integration/test_checkout_api.py",
        "tests/payments/",
    )
