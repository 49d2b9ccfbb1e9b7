import time

import pytest

from browser_session import BrowserSession
from page_objects import BasePage, Visibility
from suite_errors import ElementTimeoutError

pytestmark = pytest.mark.browser

LOGIN_HTML = """
<div id="login_button_container">
  <input data-test="username"><input data-test="password" type="password">
  <button data-test="login-button" onclick="document.getElementById('err').style.display='block'">Login</button>
  <h3 id="err" data-test="error" style="display:none">Epic sadface: Username is required</h3>
</div>
"""


@pytest.mark.asyncio
async def test_real_chromium_session_lifecycle(settings):
    async with BrowserSession(settings) as session:
        await session.page.set_content(LOGIN_HTML)
        page = BasePage(session)

        assert await page.probe("[data-test='error']") is Visibility.NOT_VISIBLE
        await page.click("[data-test='login-button']")
        assert await page.probe("[data-test='error']", timeout_ms=1000) is Visibility.VISIBLE
        assert await page.read_text("[data-test='error']") == "Epic sadface: Username is required"

        started = time.monotonic()
        with pytest.raises(ElementTimeoutError):
            await page.wait_for_visible(".inventory_container", timeout_ms=300)
        assert time.monotonic() - started >= 0.3
    assert not session.is_open
