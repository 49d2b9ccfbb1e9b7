"""Login and product-listing scenarios for the Swag Labs demo shop.

Each builder returns ``Scenario`` objects whose bodies receive a
``ScenarioRun`` (pages, step logging and screenshots already wired up).
"""

import logging

from fixture_data import FixtureStore, ScenarioRecord, UserRecord
from page_objects import ProductsPage
from runner import Scenario
from suite_config import Settings

logger = logging.getLogger(__name__)

LOGIN_GROUP = "login"
PRODUCTS_GROUP = "products"
EXPECTED_PAGE_TITLE = "Swag Labs"
AUTHOR = "QA Engineer"


async def login_as(run, username: str, password: str) -> None:
    run.step("Navigate to login page")
    await run.login_page.open()
    run.step(f"Log in as '{username}'")
    await run.login_page.login(username, password)


async def assert_logged_in(run) -> None:
    products = run.products_page
    run.check(await products.verify_successful_login(), "Landed on products page")
    run.check(products.on_inventory_url, f"URL is inventory page: {products.current_url}")
    title = await products.title()
    run.check(title == EXPECTED_PAGE_TITLE, f"Page title is '{title}'")
    header = await products.header_title()
    run.check(header == ProductsPage.EXPECTED_TITLE, f"Products header is '{header}'")


async def assert_login_rejected(run, expected_message: str | None) -> None:
    login = run.login_page
    inventory = run.settings.urls.inventory
    run.check(await login.is_error_displayed(), "Error banner displayed")
    if expected_message:
        message = await login.get_error_message()
        run.check(message == expected_message, f"Error message is '{message}'")
    run.check(not login.current_url.startswith(inventory), f"Still on login page: {login.current_url}")


def successful_login(settings: Settings) -> Scenario:
    async def body(run):
        await login_as(run, settings.users.standard, settings.users.default_password)
        await assert_logged_in(run)
        await run.screenshot("successful_login", "Login succeeded")

    return Scenario(
        name="Standard user can log in",
        body=body,
        description="Standard user reaches the products page",
        group=LOGIN_GROUP,
        categories=("login", "positive"),
        authors=(AUTHOR,),
    )


def rejected_login(name: str, username: str, password: str, expected_message: str | None, description: str = "") -> Scenario:
    async def body(run):
        await login_as(run, username, password)
        await assert_login_rejected(run, expected_message)

    return Scenario(name=name, body=body, description=description, group=LOGIN_GROUP,
                    categories=("login", "negative"), authors=(AUTHOR,))


def login_scenarios(settings: Settings) -> list[Scenario]:
    users, messages, bad = settings.users, settings.error_messages, settings.test_data
    return [
        successful_login(settings),
        rejected_login("Invalid username is rejected", bad.invalid_username, users.default_password,
                       messages.invalid_credentials),
        rejected_login("Invalid password is rejected", users.standard, bad.invalid_password,
                       messages.invalid_credentials),
        rejected_login("Locked out user is rejected", users.locked_out, users.default_password, messages.locked_out),
        rejected_login("Empty username is rejected", "", users.default_password, messages.empty_username),
        rejected_login("Empty password is rejected", users.standard, "", messages.empty_password),
    ]


def valid_user_scenario(user: UserRecord) -> Scenario:
    async def body(run):
        await login_as(run, user.username, user.password)
        await assert_logged_in(run)
        await run.screenshot(f"valid_login_{user.username}", f"Logged in as {user.username}")

    return Scenario(
        name=f"Valid user login - {user.username}",
        body=body,
        description=user.description,
        group=LOGIN_GROUP,
        categories=("login", "data-driven"),
        authors=(AUTHOR,),
    )


def invalid_user_scenario(user: UserRecord) -> Scenario:
    async def body(run):
        await login_as(run, user.username, user.password)
        await assert_login_rejected(run, user.expected_message)
        await run.screenshot(f"invalid_login_{user.username or 'empty'}", "Login rejected")

    return Scenario(
        name=f"Invalid user login - {user.username or '<empty>'}",
        body=body,
        description=user.description,
        group=LOGIN_GROUP,
        categories=("login", "data-driven"),
        authors=(AUTHOR,),
    )


def product_scenario(settings: Settings, fixtures: FixtureStore, record: ScenarioRecord) -> Scenario:
    async def body(run):
        await login_as(run, settings.users.standard, settings.users.default_password)
        run.assign_category(record.scenario)
        await assert_logged_in(run)
        products = run.products_page

        if record.products:
            names = await products.product_names()
            for product_id in record.products:
                product = fixtures.find_product(product_id)
                expected = product.name if product else product_id
                run.check(expected in names, f"Product listed: {expected}")

        for product_id in record.add_products:
            run.step(f"Add to cart: {product_id}")
            await products.add_to_cart(product_id)
        for product_id in record.remove_products:
            run.step(f"Remove from cart: {product_id}")
            await products.remove_from_cart(product_id)
        if record.expected_cart_count is not None:
            count = await products.cart_count()
            run.check(count == record.expected_cart_count,
                      f"Cart count is {count} (expected {record.expected_cart_count})")

        for option in record.sort_options:
            run.step(f"Sort by {option.name or option.value}")
            await products.sort_by(option.value)
            names = await products.product_names()
            first = names[0] if names else ""
            run.check(first == option.expected_first, f"First product after sort is '{first}'")

    return Scenario(
        name=f"Products - {record.scenario}",
        body=body,
        description=record.description,
        group=PRODUCTS_GROUP,
        categories=("products",),
        authors=(AUTHOR,),
    )


def build_scenarios(settings: Settings, fixtures: FixtureStore, groups: list[str] | None = None) -> list[Scenario]:
    """All scenarios, optionally filtered to the named groups."""
    scenarios = login_scenarios(settings)
    scenarios += [valid_user_scenario(u) for u in fixtures.get_valid_users()]
    scenarios += [invalid_user_scenario(u) for u in fixtures.get_invalid_users()]
    scenarios += [product_scenario(settings, fixtures, r) for r in fixtures.get_scenarios()]
    if groups:
        scenarios = [s for s in scenarios if s.group in groups]
    logger.info("Built %d scenarios", len(scenarios))
    return scenarios
