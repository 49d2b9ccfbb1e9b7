import enum
import html
import json
import logging
import os
import platform
import threading
import traceback
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from suite_errors import SuiteError

logger = logging.getLogger(__name__)


class Level(enum.Enum):
    INFO = "Info"
    PASS = "Pass"
    FAIL = "Fail"

    @classmethod
    def coerce(cls, value) -> "Level":
        if isinstance(value, cls):
            return value
        return cls[str(value).upper()]


def now_stamp() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M:%S")


@dataclass
class ReportEntry:
    name: str
    description: str = ""
    started_at: str = field(default_factory=now_stamp)
    steps: list[dict] = field(default_factory=list)
    screenshots: list[dict] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    authors: list[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        levels = {s["level"] for s in self.steps}
        if Level.FAIL.value in levels:
            return "failed"
        if Level.PASS.value in levels:
            return "passed"
        return "info"

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "status": self.status,
            "started_at": self.started_at,
            "categories": list(self.categories),
            "authors": list(self.authors),
            "steps": list(self.steps),
            "screenshots": list(self.screenshots),
        }


def write_durable(path: Path, text: str) -> None:
    tmp = path.with_name(path.name + ".tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        f.write(text)
        f.flush()
        os.fsync(f.fileno())
    os.replace(tmp, path)


class HtmlReport:
    """Collects entries in memory and renders them to a timestamped HTML file on flush."""

    def __init__(self, reports_dir: Path | str, title: str = "UI Regression Report", system_info: dict | None = None):
        self.reports_dir = Path(reports_dir)
        self.title = title
        self.created_at = datetime.now()
        self.path = self.reports_dir / f"TestReport_{self.created_at:%Y%m%d_%H%M%S}.html"
        self.system_info = {
            "Python": platform.python_version(),
            "OS": platform.platform(),
            "Started": self.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            **(system_info or {}),
        }
        self.entries: list[ReportEntry] = []
        self._lock = threading.Lock()
        logger.info("Report initialized: %s", self.path)

    def create_entry(self, name: str, description: str = "") -> ReportEntry:
        entry = ReportEntry(name=name, description=description)
        with self._lock:
            self.entries.append(entry)
        return entry

    def log(self, entry: ReportEntry, level, message: str) -> None:
        with self._lock:
            entry.steps.append({"time": now_stamp(), "level": Level.coerce(level).value, "message": message})

    def attach_screenshot(self, entry: ReportEntry, path: Path | str, caption: str) -> None:
        with self._lock:
            entry.screenshots.append({"path": str(path), "caption": caption})

    def flush(self) -> Path:
        with self._lock:
            entries = [e.to_dict() for e in self.entries]
        self.reports_dir.mkdir(parents=True, exist_ok=True)
        write_durable(self.path, self.render(entries))
        write_durable(self.path.with_suffix(".json"), json.dumps(
            {"title": self.title, "system_info": self.system_info, "tests": entries}, indent=2))
        logger.info("Report flushed: %s (%d entries)", self.path, len(entries))
        return self.path

    def render(self, entries: list[dict]) -> str:
        passed = sum(1 for e in entries if e["status"] == "passed")
        failed = sum(1 for e in entries if e["status"] == "failed")
        info_rows = "".join(
            f"<tr><td>{html.escape(str(k))}</td><td>{html.escape(str(v))}</td></tr>"
            for k, v in self.system_info.items()
        )
        return f"""
<html><head><meta charset="utf-8"><title>{html.escape(self.title)}</title>
<style>
body {{ font-family: Arial, sans-serif; padding: 20px; }}
.summary {{ margin-bottom: 16px; }}
.pass {{ color: #0a7b44; }}
.fail {{ color: #b00020; }}
pre {{ background: #f6f8fa; padding: 12px; border-radius: 6px; overflow: auto; }}
</style>
</head><body>
  <h1>{html.escape(self.title)}</h1>
  <div class="summary">
    <strong>Total:</strong> {len(entries)} &nbsp; <strong class="pass">Passed:</strong> {passed} &nbsp; <strong class="fail">Failed:</strong> {failed}
  </div>
  <table>{info_rows}</table>
  <hr />
  {''.join(self.render_entry(e) for e in entries)}
</body></html>
"""

    def render_entry(self, entry: dict) -> str:
        status_class = {"passed": "pass", "failed": "fail"}.get(entry["status"], "")
        steps = "\n".join(f"[{s['time']}] {s['level'].upper():<4} {s['message']}" for s in entry["steps"])
        tags = ", ".join(entry["categories"] + [f"@{a}" for a in entry["authors"]])
        images = "".join(
            f"<figure><img src=\"{html.escape(self.relative_src(s['path']))}\" style=\"max-width: 100%; border: 1px solid #ddd;\" />"
            f"<figcaption>{html.escape(s['caption'])}</figcaption></figure>"
            for s in entry["screenshots"]
        )
        return f"""
  <section>
    <h3 class="{status_class}">{html.escape(entry['name'])} — {entry['status'].upper()}</h3>
    <p>{html.escape(entry['description'])} <em>{html.escape(tags)}</em></p>
    <details open>
      <summary>Steps</summary>
      <pre>{html.escape(steps)}</pre>
    </details>
    {images}
  </section>
  <hr />
"""

    def relative_src(self, path: str) -> str:
        try:
            return os.path.relpath(path, self.reports_dir)
        except ValueError:
            return path


class ReportSink:
    """Thread-safe facade over one lazily created report.

    The report is created on first use under ``_init_lock`` (double-checked);
    every write goes through ``_write_lock``.
    """

    def __init__(self, reports_dir: Path | str = "data/reports", factory=None, system_info: dict | None = None):
        self.reports_dir = Path(reports_dir)
        self._factory = factory or (lambda: HtmlReport(self.reports_dir, system_info=system_info))
        self._report = None
        self._closed = False
        self._init_lock = threading.Lock()
        self._write_lock = threading.Lock()

    @property
    def report(self):
        report = self._report
        if report is None:
            with self._init_lock:
                if self._report is None:
                    if self._closed:
                        raise SuiteError("Report sink is closed")
                    self._report = self._factory()
                report = self._report
        return report

    @property
    def initialized(self) -> bool:
        return self._report is not None

    def create_entry(self, name: str, description: str = "", categories=(), authors=()):
        report = self.report
        with self._write_lock:
            entry = report.create_entry(name, description)
            entry.categories.extend(categories)
            entry.authors.extend(authors)
        return entry

    def log_step(self, entry, level, message: str) -> None:
        report = self.report
        with self._write_lock:
            report.log(entry, level, message)

    def log_exception(self, entry, exc: BaseException) -> None:
        text = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip()
        self.log_step(entry, Level.FAIL, text)

    def attach_screenshot(self, entry, path, caption: str = "Screenshot") -> bool:
        if not path or not Path(path).exists():
            logger.debug("Screenshot not attached, file missing: %s", path)
            return False
        report = self.report
        with self._write_lock:
            report.attach_screenshot(entry, path, caption)
        return True

    def assign_category(self, entry, *categories: str) -> None:
        with self._write_lock:
            entry.categories.extend(categories)

    def assign_author(self, entry, *authors: str) -> None:
        with self._write_lock:
            entry.authors.extend(authors)

    def flush(self):
        """Write the report to disk. No-op (returns None) if nothing was ever logged."""
        report = self._report
        if report is None:
            logger.debug("Flush requested before any report entry; nothing to write")
            return None
        with self._write_lock:
            return report.flush()

    def close(self):
        with self._init_lock:
            self._closed = True
        return self.flush()
