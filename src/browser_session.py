import asyncio
import logging

from playwright.async_api import async_playwright

from suite_config import BROWSER_TYPES, Settings
from suite_errors import EngineLaunchError, NotInitializedError

logger = logging.getLogger(__name__)


async def start_playwright():
    return await async_playwright().start()


class BrowserSession:
    """Owns one Playwright driver, browser, context and page for a single test.

    Resources are acquired in order driver -> browser -> context -> page and
    released in reverse. Use as ``async with BrowserSession(settings) as s:``
    so that close() runs on every exit path.
    """

    def __init__(self, settings: Settings | None = None, launcher=start_playwright):
        self.settings = settings or Settings()
        self._launcher = launcher
        self._lock = asyncio.Lock()
        # (attribute, close coroutine function), in acquisition order
        self._closers: list[tuple[str, object]] = []
        self._driver = None
        self.browser = None
        self.context = None
        self._page = None
        self.browser_type: str | None = None
        self.initialized = False
        self.disposed = False

    @property
    def page(self):
        if self._page is None:
            raise NotInitializedError("Session not initialized. Call initialize() first.")
        return self._page

    @property
    def is_open(self) -> bool:
        return self._page is not None

    async def initialize(self, browser_type: str | None = None, headless: bool | None = None,
                         viewport: dict | None = None, timeout_ms: int | None = None):
        cfg = self.settings.browser
        browser_type = (browser_type or cfg.default_type).lower()
        headless = cfg.headless if headless is None else headless
        viewport = viewport or cfg.viewport
        timeout_ms = cfg.timeout if timeout_ms is None else timeout_ms

        async with self._lock:
            if self.initialized:
                logger.debug("Session already initialized (%s), ignoring initialize()", self.browser_type)
                return self._page
            if browser_type not in BROWSER_TYPES:
                raise EngineLaunchError(f"Unsupported browser type: {browser_type}")
            try:
                self._driver = await self._launcher()
                self._closers.append(("_driver", self._driver.stop))
                self.browser = await getattr(self._driver, browser_type).launch(headless=headless, timeout=timeout_ms)
                self._closers.append(("browser", self.browser.close))
                self.context = await self.browser.new_context(viewport=viewport)
                self.context.set_default_timeout(timeout_ms)
                self._closers.append(("context", self.context.close))
                self._page = await self.context.new_page()
                self._closers.append(("_page", self._page.close))
            except Exception as e:
                logger.warning("Starting %s session failed, releasing partial resources: %s", browser_type, e)
                await self._release()
                raise EngineLaunchError(f"Failed to start {browser_type} session: {e}") from e
            except BaseException:
                await self._release()
                raise

            self.browser_type = browser_type
            self.initialized = True
            self.disposed = False
            logger.info(
                "Session started: %s headless=%s viewport=%sx%s timeout=%sms",
                browser_type, headless, viewport.get("width"), viewport.get("height"), timeout_ms,
            )
            return self._page

    async def new_page(self):
        if self.context is None:
            raise NotInitializedError("Session not initialized. Call initialize() first.")
        return await self.context.new_page()

    async def _release(self) -> None:
        while self._closers:
            attr, close = self._closers.pop()
            try:
                await close()
            except Exception as e:
                logger.warning("Error closing %s: %s", attr.lstrip("_"), e)
            setattr(self, attr, None)
        self.initialized = False

    async def close(self) -> None:
        async with self._lock:
            if self._closers:
                await self._release()
                logger.info("Session closed (%s)", self.browser_type)
            self.disposed = True

    async def __aenter__(self):
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()
        return False
