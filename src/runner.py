import asyncio
import logging
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from browser_session import BrowserSession, start_playwright
from completion_coordinator import UNGROUPED, CompletionCoordinator
from fixture_data import FixtureStore
from page_objects import BasePage, LoginPage, ProductsPage
from report_sink import Level, ReportSink
from suite_config import Settings
from suite_errors import SuiteError

logger = logging.getLogger(__name__)


def sanitize_for_filename(text: str) -> str:
    """Sanitize text for use in filenames."""
    text = re.sub(r"[^\w\s-]", "", text)
    text = re.sub(r"[-\s]+", "_", text)
    return text.strip("_").lower()[:100]


@dataclass
class Scenario:
    name: str
    body: object  # async callable taking a ScenarioRun
    description: str = ""
    group: str = UNGROUPED
    categories: tuple = ()
    authors: tuple = ()
    browser_type: str | None = None


@dataclass
class SuiteContext:
    """Process-wide collaborators shared by every scenario in a run."""

    settings: Settings
    sink: ReportSink
    coordinator: CompletionCoordinator
    fixtures: FixtureStore
    screenshots_dir: Path
    launcher: object = start_playwright

    @classmethod
    def create(cls, settings: Settings, run_dir: Path | None = None, launcher=start_playwright,
               fixtures: FixtureStore | None = None) -> "SuiteContext":
        reports_dir = run_dir if run_dir else Path(settings.paths.reports)
        screenshots_dir = run_dir / "screenshots" if run_dir else Path(settings.paths.screenshots)
        sink = ReportSink(reports_dir, system_info={
            "Environment": settings.environment,
            "Browser": settings.browser.default_type,
            "Base URL": settings.urls.base,
        })
        coordinator = CompletionCoordinator(on_flush=lambda group: sink.flush())
        return cls(
            settings=settings,
            sink=sink,
            coordinator=coordinator,
            fixtures=fixtures or FixtureStore(settings.paths.test_data),
            screenshots_dir=screenshots_dir,
            launcher=launcher,
        )

    def register(self, scenario: Scenario) -> None:
        self.coordinator.register(scenario.group)

    def mark_complete(self, group: str) -> None:
        try:
            self.coordinator.complete(group)
        except SuiteError as e:
            logger.error("Completion bookkeeping failed for group '%s': %s", group, e)


class ScenarioRun:
    """Per-scenario handle given to scenario bodies: pages, step logging, screenshots."""

    def __init__(self, suite: SuiteContext, scenario: Scenario, session: BrowserSession):
        self.suite = suite
        self.scenario = scenario
        self.session = session
        self.settings = suite.settings
        self.fixtures = suite.fixtures
        self.entry = None
        self.steps: list[str] = []
        self.screenshot_path: str = ""
        self.login_page: LoginPage | None = None
        self.products_page: ProductsPage | None = None

    def _report(self, method: str, *args) -> None:
        if self.entry is None:
            return
        try:
            getattr(self.suite.sink, method)(self.entry, *args)
        except Exception as e:
            logger.warning("Report %s failed for '%s': %s", method, self.scenario.name, e)

    def open_entry(self) -> None:
        try:
            self.entry = self.suite.sink.create_entry(
                self.scenario.name, self.scenario.description, self.scenario.categories, self.scenario.authors
            )
        except Exception as e:
            logger.warning("Could not create report entry for '%s': %s", self.scenario.name, e)

    def step(self, message: str, level=Level.INFO) -> None:
        self.steps.append(message)
        logger.info("[%s] %s", self.scenario.name, message)
        self._report("log_step", level, message)

    def passed(self, message: str) -> None:
        self.step(message, Level.PASS)

    def check(self, condition, message: str) -> None:
        """Assert ``condition``; on success log ``message`` as a passing step."""
        if not condition:
            detail = condition.describe() if hasattr(condition, "describe") else ""
            raise AssertionError(f"{message} failed" + (f" ({detail})" if detail else ""))
        self.passed(message)

    def assign_category(self, *categories: str) -> None:
        self._report("assign_category", *categories)

    def screenshot_file(self, label: str) -> Path:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        return self.suite.screenshots_dir / f"{sanitize_for_filename(label)}_{stamp}.png"

    async def screenshot(self, label: str, caption: str = "Screenshot") -> str:
        path = await BasePage(self.session).screenshot(self.screenshot_file(label))
        self.screenshot_path = str(path)
        self._report("attach_screenshot", path, caption)
        return str(path)

    async def capture_failure(self) -> None:
        try:
            await self.screenshot(f"{self.scenario.name}_failed", "Failure screenshot")
        except Exception as e:
            logger.warning("Could not save failure screenshot for '%s': %s", self.scenario.name, e)


async def run_scenario(suite: SuiteContext, scenario: Scenario, outcome: dict | None = None) -> dict:
    """Run one scenario in its own browser session.

    Failures are logged to the report with a best-effort screenshot and
    re-raised unchanged. The session is closed and the scenario's group
    marked complete on every path.
    """
    outcome = {} if outcome is None else outcome
    outcome.update({"name": scenario.name, "group": scenario.group, "status": "failed",
                    "error": "", "screenshot": "", "steps": []})
    session = BrowserSession(suite.settings, launcher=suite.launcher)
    run = ScenarioRun(suite, scenario, session)
    run.open_entry()
    try:
        run.step(f"Starting test: {scenario.name}")
        await session.initialize(scenario.browser_type)
        run.login_page = LoginPage(session)
        run.products_page = ProductsPage(session)
        await scenario.body(run)
        run.passed("Test passed")
        outcome["status"] = "passed"
    except Exception as e:
        outcome["error"] = str(e) or type(e).__name__
        run.step(f"Test failed: {outcome['error']}", Level.FAIL)
        run._report("log_exception", e)
        if session.is_open:
            await run.capture_failure()
        raise
    finally:
        outcome["screenshot"] = run.screenshot_path
        outcome["steps"] = list(run.steps)
        await session.close()
        suite.mark_complete(scenario.group)
    return outcome


def run_in_worker(suite: SuiteContext, scenario: Scenario) -> dict:
    outcome: dict = {}
    try:
        asyncio.run(run_scenario(suite, scenario, outcome))
        logger.info("✓ Passed: %s", scenario.name)
    except Exception as e:
        err = outcome.get("error") or str(e)
        err_excerpt = err if len(err) < 300 else (err[:297] + "...")
        logger.error("✖ Failed: %s — %s", scenario.name, err_excerpt)
    return outcome


def run_test_suite(suite: SuiteContext, scenarios: list[Scenario], max_workers: int = 4) -> dict:
    """Run scenarios in parallel, one browser session per worker thread."""
    for scenario in scenarios:
        suite.register(scenario)
    if not scenarios:
        logger.warning("No scenarios to run")
        return {"tests": []}

    with ThreadPoolExecutor(max_workers=max(1, max_workers), thread_name_prefix="scenario") as pool:
        futures = [pool.submit(run_in_worker, suite, s) for s in scenarios]
        results = [f.result() for f in futures]
    return {"tests": results}
