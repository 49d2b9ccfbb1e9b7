#!/usr/bin/env python3

import argparse
import csv
import json
import logging
import sys
import webbrowser
import zipfile
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from browser_session import start_playwright
from runner import SuiteContext, run_test_suite
from scenarios import build_scenarios
from suite_config import load_settings
from suite_errors import SuiteError

logger = logging.getLogger(__name__)


def archive_files(zip_path: Path, files: list[Path]):
    with zipfile.ZipFile(zip_path, "w") as zf:
        for f in files:
            if f and f.exists():
                zf.write(f, arcname=f.name)


def log_to_csv(log_path: Path, timestamp: str, artifacts: dict):
    csv_exists = log_path.exists()
    with open(log_path, "a", newline="") as csvfile:
        writer = csv.writer(csvfile)
        if not csv_exists:
            writer.writerow(["Timestamp", "Results", "Report", "Archive"])
        writer.writerow([
            timestamp,
            str(artifacts.get("results")),
            str(artifacts.get("report")),
            str(artifacts.get("archive")),
        ])


def open_report(report_path: Path) -> bool:
    """Open the finished report in the default browser. Best-effort."""
    try:
        opened = webbrowser.open(Path(report_path).resolve().as_uri())
    except Exception as e:
        logger.warning("Could not open report %s: %s", report_path, e)
        return False
    if not opened:
        logger.warning("No browser available to open report %s", report_path)
    return opened


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Swag Labs login & product-listing UI checks")
    parser.add_argument("--environment", help="Config environment (appsettings.<env>.json), default TEST_ENVIRONMENT")
    parser.add_argument("--config-dir", help="Directory holding appsettings*.json")
    parser.add_argument("--browser", choices=["chromium", "firefox", "webkit"], help="Override browser type")
    parser.add_argument("--headful", action="store_true", help="Run browser headful for debugging")
    parser.add_argument("--workers", type=int, default=4, help="Parallel scenarios")
    parser.add_argument("--group", action="append", help="Only run this scenario group (repeatable)")
    parser.add_argument("--open-report", action="store_true", help="Open the HTML report when the run finishes")
    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )

    try:
        settings = load_settings(environment=args.environment, config_dir=args.config_dir)
    except SuiteError as e:
        print(f"✖ Configuration error: {e}")
        return 2
    if args.browser or args.headful:
        settings = replace(settings, browser=replace(
            settings.browser,
            default_type=args.browser or settings.browser.default_type,
            headless=settings.browser.headless and not args.headful,
        ))

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_dir = Path(f"data/runs/run_{timestamp}")
    run_dir.mkdir(parents=True, exist_ok=True)

    suite = SuiteContext.create(settings, run_dir=run_dir, launcher=start_playwright)
    try:
        scenarios = build_scenarios(settings, suite.fixtures, groups=args.group)
    except SuiteError as e:
        print(f"✖ Test data error: {e}")
        return 2

    print(f"🏃 Running {len(scenarios)} scenarios with Playwright ({settings.browser.default_type})...")
    results_json = run_test_suite(suite, scenarios, max_workers=args.workers)

    results_path = run_dir / "results.json"
    with open(results_path, "w", encoding="utf-8") as f:
        json.dump(results_json, f, indent=2)
    print(f"📊 Results written: {results_path}")

    # groups flush as they drain; close() writes the final state once more
    try:
        report_path = suite.sink.close()
    except Exception:
        logger.exception("Writing the final report failed")
        report_path = None
    if report_path:
        print(f"📝 HTML report: {report_path}")
        if args.open_report:
            open_report(report_path)
    artifacts = {"results": results_path, "report": report_path}

    archive_path = run_dir / "archive.zip"
    archive_files(archive_path, [results_path] + ([report_path] if report_path else []))
    artifacts["archive"] = archive_path
    print(f"📦 Archive: {archive_path}")

    log_to_csv(run_dir / "run_log.csv", timestamp, artifacts)

    total = len(results_json.get("tests", []))
    passed = sum(1 for r in results_json.get("tests", []) if r.get("status") == "passed")
    failed = total - passed
    if total:
        print(f"✅ Done. Total: {total}, Passed: {passed}, Failed: {failed}")
    else:
        print("✅ Done. No scenarios executed.")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
