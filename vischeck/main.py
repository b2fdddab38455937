"""vischeck command-line entry point.

Runs a one-shot visual check of the local desktop: opens a test, checks
the primary monitor once and closes the test, printing its results.

Typical usage::

    python -m vischeck.main --app "My App" --test "Smoke" --tag "home"

Programmatic usage::

    from vischeck.main import build_manager

    manager = build_manager(api_key="...")
    manager.open("My App", "Smoke")
    manager.check_window("home")
    print(manager.close(throw_on_failure=False))
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from vischeck.config.settings import API_KEY_ENV_VAR, DEFAULT_SERVER_URL, Settings
from vischeck.core.session_manager import SessionManager
from vischeck.exceptions import VisCheckError
from vischeck.models.session import TestResults
from vischeck.platform.interface import AppDriver, create_driver

logger = logging.getLogger(__name__)


def build_manager(
    api_key: str = "",
    server_url: str = DEFAULT_SERVER_URL,
    settings: Settings | None = None,
    driver: AppDriver | None = None,
) -> SessionManager:
    """Construct a ``SessionManager`` around the desktop driver.

    Args:
        api_key: Service API key.  Overrides ``settings.api_key``.
        server_url: Service URL.  Overrides ``settings.server_url``.
        settings: Base configuration.  Defaults are used if ``None``.
        driver: Driver to use instead of the desktop driver.

    Returns:
        A ready-to-open ``SessionManager``.
    """
    base = (settings or Settings()).to_dict()
    if api_key:
        base["api_key"] = api_key
    if server_url:
        base["server_url"] = server_url
    return SessionManager(driver or create_driver("desktop"), Settings.from_dict(base))


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments, run one check, and print the results."""
    parser = argparse.ArgumentParser(
        prog="vischeck",
        description="vischeck -- check the desktop against its visual baseline.",
    )
    parser.add_argument("--app", "-a", required=True, help="Application name.")
    parser.add_argument("--test", "-t", required=True, help="Test name.")
    parser.add_argument("--tag", default="", help="Name of the checked step.")
    parser.add_argument(
        "--api-key",
        "-k",
        default="",
        help=(
            f"Service API key. Falls back to the {API_KEY_ENV_VAR} "
            "environment variable if not provided."
        ),
    )
    parser.add_argument(
        "--server-url",
        default=DEFAULT_SERVER_URL,
        help="Comparison service URL.",
    )
    parser.add_argument(
        "--match-timeout",
        type=int,
        default=2,
        help="Seconds to retry a mismatching check (default 2).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )

    args = parser.parse_args(argv)

    # -- Logging setup ---------------------------------------------------
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # -- Resolve API key -------------------------------------------------
    api_key: str = args.api_key or os.environ.get(API_KEY_ENV_VAR, "")
    if not api_key:
        logger.error(
            "No API key provided. Use --api-key or set the %s environment variable.",
            API_KEY_ENV_VAR,
        )
        sys.exit(1)

    # -- Build and run ---------------------------------------------------
    driver = create_driver("desktop")
    try:
        manager = build_manager(
            api_key=api_key,
            server_url=args.server_url,
            settings=Settings(match_timeout_seconds=args.match_timeout),
            driver=driver,
        )
        try:
            manager.open(args.app, args.test)
            manager.check_window(args.tag)
            results = manager.close(throw_on_failure=False)
        except (VisCheckError, ValueError) as exc:
            logger.error("Check failed: %s", exc)
            sys.exit(1)
        finally:
            manager.abort()
    finally:
        driver.close()

    _print_results_summary(args.app, args.test, results)

    sys.exit(0 if results is not None and results.is_passed else 1)


def _print_results_summary(app_name: str, test_name: str, results: TestResults | None) -> None:
    """Print a human-readable summary of the test results.

    Args:
        app_name: Name of the application under test.
        test_name: Name of the test.
        results: The results returned by ``close``.
    """
    separator = "-" * 60
    print(separator)
    print(f"Test:       '{test_name}' of '{app_name}'")
    if results is None:
        print("Status:     SKIPPED (disabled)")
        print(separator)
        return
    if results.is_new:
        status = "NEW"
    elif results.is_passed:
        status = "PASSED"
    else:
        status = "FAILED"
    print(f"Status:     {status}")
    print(f"Steps:      {results.steps}")
    print(f"Matches:    {results.matches}")
    print(f"Mismatches: {results.mismatches}")
    print(f"Missing:    {results.missing}")
    if results.url:
        print(f"URL:        {results.url}")
    print(separator)


if __name__ == "__main__":
    main()
