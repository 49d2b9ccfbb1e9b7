import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from suite_errors import ElementTimeoutError

logger = logging.getLogger(__name__)


class Visibility(enum.Enum):
    VISIBLE = "visible"
    NOT_VISIBLE = "not_visible"
    TIMED_OUT = "timed_out"


@dataclass
class CheckReport:
    """Outcome of a composite check. Every check is evaluated; falsy if any failed."""

    results: dict[str, bool] = field(default_factory=dict)

    @property
    def failed(self) -> list[str]:
        return [name for name, ok in self.results.items() if not ok]

    def __bool__(self) -> bool:
        return not self.failed

    def describe(self) -> str:
        if not self.failed:
            return f"all {len(self.results)} checks passed"
        return "failed checks: " + ", ".join(self.failed)


class BasePage:
    def __init__(self, session, default_timeout_ms: int | None = None):
        self.session = session
        self.settings = session.settings
        self.page = session.page
        self.default_timeout_ms = (
            self.settings.timeouts.element_wait if default_timeout_ms is None else default_timeout_ms
        )

    async def _guard(self, selector: str, timeout_ms: float, op):
        try:
            return await op
        except PlaywrightTimeoutError as e:
            detail = str(e).splitlines()[0] if str(e) else ""
            raise ElementTimeoutError(selector, timeout_ms, detail) from e

    async def navigate(self, url: str) -> None:
        timeout = self.settings.timeouts.long_wait
        logger.debug("navigate %s", url)
        await self._guard(url, timeout, self.page.goto(url, timeout=timeout))

    async def wait_for_load(self, state: str = "networkidle") -> None:
        timeout = self.settings.timeouts.long_wait
        await self._guard(f"load:{state}", timeout, self.page.wait_for_load_state(state, timeout=timeout))

    async def click(self, selector: str, timeout_ms: int | None = None) -> None:
        timeout = self.default_timeout_ms if timeout_ms is None else timeout_ms
        await self._guard(selector, timeout, self.page.click(selector, timeout=timeout))

    async def fill(self, selector: str, text: str, timeout_ms: int | None = None) -> None:
        timeout = self.default_timeout_ms if timeout_ms is None else timeout_ms
        await self._guard(selector, timeout, self.page.fill(selector, text, timeout=timeout))

    async def read_text(self, selector: str, timeout_ms: int | None = None) -> str:
        timeout = self.default_timeout_ms if timeout_ms is None else timeout_ms
        text = await self._guard(selector, timeout, self.page.text_content(selector, timeout=timeout))
        return text or ""

    async def wait_for_visible(self, selector: str, timeout_ms: int | None = None) -> None:
        timeout = self.default_timeout_ms if timeout_ms is None else timeout_ms
        await self._guard(selector, timeout, self.page.wait_for_selector(selector, state="visible", timeout=timeout))

    async def probe(self, selector: str, timeout_ms: int | None = None) -> Visibility:
        """Check a selector without raising.

        With no timeout this is an instant check; with one it waits up to
        timeout_ms and reports TIMED_OUT if the element never shows.
        """
        if timeout_ms is None:
            try:
                visible = await self.page.is_visible(selector)
            except Exception as e:
                logger.debug("is_visible(%s) failed: %s", selector, e)
                return Visibility.NOT_VISIBLE
            return Visibility.VISIBLE if visible else Visibility.NOT_VISIBLE
        try:
            await self.wait_for_visible(selector, timeout_ms)
        except ElementTimeoutError:
            return Visibility.TIMED_OUT
        except Exception as e:
            logger.debug("wait_for_visible(%s) failed: %s", selector, e)
            return Visibility.NOT_VISIBLE
        return Visibility.VISIBLE

    async def is_visible(self, selector: str, timeout_ms: int | None = None) -> bool:
        return await self.probe(selector, timeout_ms) is Visibility.VISIBLE

    async def check_all(self, *selectors: str) -> CheckReport:
        report = CheckReport()
        for selector in selectors:
            report.results[selector] = await self.is_visible(selector)
        if not report:
            logger.info("%s: %s", type(self).__name__, report.describe())
        return report

    async def title(self) -> str:
        return await self.page.title()

    @property
    def current_url(self) -> str:
        return self.page.url

    async def screenshot(self, path: Path | str) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        await self.page.screenshot(path=str(path), full_page=True)
        return path


class LoginPage(BasePage):
    USERNAME_INPUT = "[data-test='username']"
    PASSWORD_INPUT = "[data-test='password']"
    LOGIN_BUTTON = "[data-test='login-button']"
    ERROR_MESSAGE = "[data-test='error']"
    LOGIN_LOGO = ".login_logo"
    LOGIN_CONTAINER = "#login_button_container"

    async def open(self) -> None:
        await self.navigate(self.settings.urls.base)
        await self.wait_for_load()

    async def enter_username(self, username: str) -> None:
        await self.wait_for_visible(self.USERNAME_INPUT)
        await self.fill(self.USERNAME_INPUT, username)

    async def enter_password(self, password: str) -> None:
        await self.wait_for_visible(self.PASSWORD_INPUT)
        await self.fill(self.PASSWORD_INPUT, password)

    async def submit(self) -> None:
        await self.click(self.LOGIN_BUTTON)

    async def login(self, username: str, password: str) -> None:
        await self.enter_username(username)
        await self.enter_password(password)
        await self.submit()

    async def get_error_message(self) -> str:
        # banner is optional: a timeout means "no error shown"
        if await self.probe(self.ERROR_MESSAGE, self.settings.timeouts.short_wait) is not Visibility.VISIBLE:
            return ""
        return await self.read_text(self.ERROR_MESSAGE)

    async def is_error_displayed(self) -> bool:
        return await self.is_visible(self.ERROR_MESSAGE)

    async def loaded_report(self) -> CheckReport:
        return await self.check_all(
            self.LOGIN_LOGO, self.LOGIN_CONTAINER, self.USERNAME_INPUT, self.PASSWORD_INPUT, self.LOGIN_BUTTON
        )

    async def is_loaded(self) -> bool:
        return bool(await self.loaded_report())

    async def clear_inputs(self) -> None:
        await self.fill(self.USERNAME_INPUT, "")
        await self.fill(self.PASSWORD_INPUT, "")


class ProductsPage(BasePage):
    TITLE = ".title"
    CONTAINER = ".inventory_container"
    CART_LINK = ".shopping_cart_link"
    CART_BADGE = ".shopping_cart_badge"
    MENU_BUTTON = "#react-burger-menu-btn"
    ITEMS = ".inventory_item"
    ITEM_NAMES = ".inventory_item_name"
    APP_LOGO = ".app_logo"
    SORT_SELECT = "[data-test='product-sort-container']"

    EXPECTED_TITLE = "Products"

    @property
    def on_inventory_url(self) -> bool:
        return self.current_url.startswith(self.settings.urls.inventory)

    async def is_on_products_page(self) -> bool:
        if await self.probe(self.TITLE, self.settings.timeouts.medium_wait) is not Visibility.VISIBLE:
            return False
        header = await self.read_text(self.TITLE)
        return header.strip().lower() == self.EXPECTED_TITLE.lower() and await self.is_visible(self.CONTAINER)

    async def header_title(self) -> str:
        await self.wait_for_visible(self.TITLE)
        return (await self.read_text(self.TITLE)).strip()

    async def product_count(self) -> int:
        await self.wait_for_visible(self.ITEMS)
        return len(await self.page.query_selector_all(self.ITEMS))

    async def product_names(self) -> list[str]:
        await self.wait_for_visible(self.ITEM_NAMES)
        return [name.strip() for name in await self.page.locator(self.ITEM_NAMES).all_text_contents()]

    async def add_to_cart(self, product_id: str) -> None:
        await self.click(f"[data-test='add-to-cart-{product_id}']")

    async def remove_from_cart(self, product_id: str) -> None:
        await self.click(f"[data-test='remove-{product_id}']")

    async def cart_count(self) -> int:
        if not await self.is_visible(self.CART_BADGE):
            return 0
        text = await self.read_text(self.CART_BADGE)
        return int(text.strip() or 0)

    async def sort_by(self, value: str) -> None:
        timeout = self.default_timeout_ms
        await self._guard(self.SORT_SELECT, timeout, self.page.select_option(self.SORT_SELECT, value, timeout=timeout))

    async def verify_successful_login(self) -> CheckReport:
        report = await self.check_all(self.CART_LINK, self.MENU_BUTTON, self.APP_LOGO)
        report.results["products header"] = await self.is_on_products_page()
        report.results["inventory url"] = self.on_inventory_url
        return report
