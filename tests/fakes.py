"""In-memory stand-ins for the Playwright driver that mimic the Swag Labs shop."""

import asyncio
import re
import threading
from pathlib import Path

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from page_objects import LoginPage, ProductsPage

CATALOG = [
    ("sauce-labs-backpack", "Sauce Labs Backpack", 29.99),
    ("sauce-labs-bike-light", "Sauce Labs Bike Light", 9.99),
    ("sauce-labs-bolt-t-shirt", "Sauce Labs Bolt T-Shirt", 15.99),
    ("sauce-labs-fleece-jacket", "Sauce Labs Fleece Jacket", 49.99),
    ("sauce-labs-onesie", "Sauce Labs Onesie", 7.99),
    ("test.allthethings()-t-shirt-(red)", "Test.allTheThings() T-Shirt (Red)", 15.99),
]

ACCEPTED = {"standard_user", "performance_glitch_user", "problem_user", "visual_user", "error_user"}
PASSWORD = "secret_sauce"

LOGIN_SCREEN = {
    LoginPage.LOGIN_LOGO, LoginPage.LOGIN_CONTAINER, LoginPage.USERNAME_INPUT,
    LoginPage.PASSWORD_INPUT, LoginPage.LOGIN_BUTTON,
}
INVENTORY_SCREEN = {
    ProductsPage.TITLE, ProductsPage.CONTAINER, ProductsPage.CART_LINK, ProductsPage.MENU_BUTTON,
    ProductsPage.ITEMS, ProductsPage.ITEM_NAMES, ProductsPage.APP_LOGO, ProductsPage.SORT_SELECT,
}


class FakeLocator:
    def __init__(self, texts):
        self._texts = texts

    async def all_text_contents(self):
        return list(self._texts)


class FakePage:
    def __init__(self, engine):
        self.engine = engine
        self.url = "about:blank"
        self.inputs: dict[str, str] = {}
        self.error = ""
        self.cart: set[str] = set()
        self.sort = "az"
        self.closed = False

    @property
    def on_site(self) -> bool:
        return self.url.startswith(self.engine.base_url)

    @property
    def on_inventory(self) -> bool:
        return "inventory.html" in self.url

    def visible(self) -> set:
        if not self.on_site:
            return set()
        if self.on_inventory:
            shown = set(INVENTORY_SCREEN)
            if self.cart:
                shown.add(ProductsPage.CART_BADGE)
            for product_id, _, _ in CATALOG:
                prefix = "remove" if product_id in self.cart else "add-to-cart"
                shown.add(f"[data-test='{prefix}-{product_id}']")
            return shown
        shown = set(LOGIN_SCREEN)
        if self.error:
            shown.add(LoginPage.ERROR_MESSAGE)
        return shown

    async def _wait(self, selector, timeout):
        if selector in self.visible():
            return
        loop = asyncio.get_running_loop()
        deadline = loop.time() + (timeout or 0) / 1000
        while (remaining := deadline - loop.time()) > 0:
            await asyncio.sleep(remaining)
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.\nwaiting for locator(\"{selector}\")")

    async def goto(self, url, timeout=None):
        self.url = url
        self.error = ""

    async def wait_for_load_state(self, state="load", timeout=None):
        return None

    async def title(self):
        return "Swag Labs" if self.on_site else ""

    async def fill(self, selector, value, timeout=None):
        await self._wait(selector, timeout)
        self.inputs[selector] = value

    async def click(self, selector, timeout=None):
        await self._wait(selector, timeout)
        if selector == LoginPage.LOGIN_BUTTON:
            self._submit()
            return
        m = re.match(r"\[data-test='(add-to-cart|remove)-(.+)'\]$", selector)
        if m:
            if m.group(1) == "add-to-cart":
                self.cart.add(m.group(2))
            else:
                self.cart.discard(m.group(2))

    def _submit(self):
        username = self.inputs.get(LoginPage.USERNAME_INPUT, "")
        password = self.inputs.get(LoginPage.PASSWORD_INPUT, "")
        if not username:
            self.error = "Epic sadface: Username is required"
        elif not password:
            self.error = "Epic sadface: Password is required"
        elif username == "locked_out_user" and password == PASSWORD:
            self.error = "Epic sadface: Sorry, this user has been locked out."
        elif username in ACCEPTED and password == PASSWORD:
            self.url = self.engine.base_url.rstrip("/") + "/inventory.html"
            self.error = ""
        else:
            self.error = "Epic sadface: Username and password do not match any user in this service"

    async def is_visible(self, selector, timeout=None):
        if self.engine.broken_lookup:
            raise RuntimeError("Target closed")
        return selector in self.visible()

    async def wait_for_selector(self, selector, state="visible", timeout=None):
        await self._wait(selector, timeout)
        return object()

    async def text_content(self, selector, timeout=None):
        await self._wait(selector, timeout)
        if selector == LoginPage.ERROR_MESSAGE:
            return self.error
        if selector == ProductsPage.TITLE:
            return "Products"
        if selector == ProductsPage.CART_BADGE:
            return str(len(self.cart))
        return None

    def _sorted_names(self):
        items = list(CATALOG)
        if self.sort == "za":
            items.sort(key=lambda p: p[1], reverse=True)
        elif self.sort == "lohi":
            items.sort(key=lambda p: p[2])
        elif self.sort == "hilo":
            items.sort(key=lambda p: p[2], reverse=True)
        else:
            items.sort(key=lambda p: p[1])
        return [name for _, name, _ in items]

    async def query_selector_all(self, selector):
        return [object() for _ in CATALOG] if selector in self.visible() else []

    def locator(self, selector):
        return FakeLocator(self._sorted_names() if selector in self.visible() else [])

    async def select_option(self, selector, value, timeout=None):
        await self._wait(selector, timeout)
        self.sort = value

    async def screenshot(self, path=None, full_page=False):
        if self.engine.fail_screenshot:
            raise RuntimeError("screenshot failed")
        Path(path).write_bytes(b"\x89PNG fake")
        return b"\x89PNG fake"

    async def close(self):
        self.engine.record("close", "page")
        if "page" in self.engine.close_errors:
            raise RuntimeError("page close failed")
        self.closed = True


class FakeContext:
    def __init__(self, engine, viewport):
        self.engine = engine
        self.viewport = viewport
        self.default_timeout = None
        self.pages: list[FakePage] = []

    def set_default_timeout(self, timeout):
        self.default_timeout = timeout

    async def new_page(self):
        if self.engine.fail_at == "page":
            raise RuntimeError("page creation failed")
        page = FakePage(self.engine)
        self.pages.append(page)
        return page

    async def close(self):
        self.engine.record("close", "context")
        if "context" in self.engine.close_errors:
            raise RuntimeError("context close failed")


class FakeBrowser:
    def __init__(self, engine, name, headless):
        self.engine = engine
        self.name = name
        self.headless = headless
        self.contexts: list[FakeContext] = []

    async def new_context(self, viewport=None):
        if self.engine.fail_at == "context":
            raise RuntimeError("context creation failed")
        context = FakeContext(self.engine, viewport)
        self.contexts.append(context)
        return context

    async def close(self):
        self.engine.record("close", "browser")
        if "browser" in self.engine.close_errors:
            raise RuntimeError("browser close failed")


class FakeBrowserType:
    def __init__(self, engine, name):
        self.engine = engine
        self.name = name

    async def launch(self, headless=True, timeout=None):
        if self.engine.fail_at == "launch":
            raise RuntimeError("Executable doesn't exist")
        browser = FakeBrowser(self.engine, self.name, headless)
        self.engine.browsers.append(browser)
        return browser


class FakeDriver:
    def __init__(self, engine):
        self.engine = engine
        self.chromium = FakeBrowserType(engine, "chromium")
        self.firefox = FakeBrowserType(engine, "firefox")
        self.webkit = FakeBrowserType(engine, "webkit")

    async def stop(self):
        self.engine.record("close", "driver")
        if "driver" in self.engine.close_errors:
            raise RuntimeError("driver stop failed")


class FakeEngine:
    """Shared knobs and an event log for every driver it launches."""

    def __init__(self, base_url="https://www.saucedemo.com"):
        self.base_url = base_url
        self.fail_at = None
        self.close_errors: set[str] = set()
        self.fail_screenshot = False
        self.broken_lookup = False
        self.drivers: list[FakeDriver] = []
        self.browsers: list[FakeBrowser] = []
        self.events: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def record(self, action, what):
        with self._lock:
            self.events.append((action, what))

    def closed(self) -> list[str]:
        return [what for action, what in self.events if action == "close"]

    async def launch(self):
        driver = FakeDriver(self)
        with self._lock:
            self.drivers.append(driver)
        return driver
