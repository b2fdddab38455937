"""Mismatch and failure-report policy.

Decides when a test raises and when it defers, whether a finished
session is saved as the new baseline, and how a finished session is
classified.  It is a pure-logic module with no side effects: the
``SessionManager`` feeds it results and acts on the answers.

This module depends only on ``vischeck.models.session`` and
``vischeck.exceptions``.

Typical usage::

    save = should_save(session.is_new_session, save_new, save_failed)
    outcome = classify(results)
    raise_for_outcome(outcome, results, "Login", "MyApp", throw=True)
"""

from __future__ import annotations

from enum import Enum

from vischeck.exceptions import NewTestError, TestFailedError
from vischeck.models.session import TestResults


class FailureReports(Enum):
    """When check mismatches are reported as failures.

    Attributes:
        ON_CLOSE: Mismatches are reported when the test is closed.
        IMMEDIATE: The first non-matching check raises.
    """

    ON_CLOSE = "on_close"
    IMMEDIATE = "immediate"


class TestOutcome(Enum):
    """Classification of a finished session."""

    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    NEW = "new"


def should_save(is_new_session: bool, save_new_tests: bool, save_failed_tests: bool) -> bool:
    """Decide whether the session is saved as the baseline on close.

    New sessions follow ``save_new_tests``; existing sessions follow
    ``save_failed_tests``.
    """
    return (is_new_session and save_new_tests) or (
        not is_new_session and save_failed_tests
    )


def should_raise_on_mismatch(failure_reports: FailureReports, as_expected: bool) -> bool:
    """Decide whether a check raises right away."""
    return not as_expected and failure_reports is FailureReports.IMMEDIATE


def classify(results: TestResults) -> TestOutcome:
    """Classify a finished session.

    An existing baseline with any mismatching or missing step is a
    failure.  A new baseline is ``NEW`` regardless of its counters.
    Everything else passed.
    """
    if not results.is_new and (results.mismatches > 0 or results.missing > 0):
        return TestOutcome.FAILED
    if results.is_new:
        return TestOutcome.NEW
    return TestOutcome.PASSED


def mismatch_message(test_name: str, app_name: str, tag: str) -> str:
    """Message for a check that did not match under immediate reports."""
    return f"Mismatch found in '{test_name}' of '{app_name}' (tag: '{tag}')"


def outcome_message(outcome: TestOutcome, test_name: str, app_name: str, url: str) -> str:
    """Human-readable description of a finished session."""
    if outcome is TestOutcome.FAILED:
        return f"'{test_name}' of '{app_name}'. See details at {url}"
    if outcome is TestOutcome.NEW:
        return f"'{test_name}' of '{app_name}'. Please approve the new baseline at {url}"
    return f"'{test_name}' of '{app_name}' passed. See details at {url}"


def raise_for_outcome(
    outcome: TestOutcome,
    results: TestResults,
    test_name: str,
    app_name: str,
    throw: bool,
) -> None:
    """Raise the error matching ``outcome`` if ``throw`` is set.

    Args:
        outcome: Classification from ``classify``.
        results: The session results, attached to the raised error.
        test_name: Name of the test, for the message.
        app_name: Name of the application, for the message.
        throw: When False this function never raises.

    Raises:
        TestFailedError: For a failed outcome.
        NewTestError: For a new outcome.
    """
    if not throw or outcome is TestOutcome.PASSED:
        return
    message = outcome_message(outcome, test_name, app_name, results.url)
    if outcome is TestOutcome.FAILED:
        raise TestFailedError(message, results)
    raise NewTestError(message, results)
