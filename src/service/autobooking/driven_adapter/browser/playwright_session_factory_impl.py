"""
Playwright Browser Session Factory

One Chromium browser per session, closed when the session context exits.
Close errors are logged and swallowed so teardown never masks the attempt's
own result.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, List

from playwright.async_api import async_playwright

from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.interface.i_browser_session import (
    IBrowserSession,
    IBrowserSessionFactory,
)
from src.service.autobooking.driven_adapter.browser.playwright_screens import (
    PlaywrightBrowserSession,
)


_USER_AGENT = (
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)

# Hides the automation flags the target site checks for
_STEALTH_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', {get: () => undefined});
Object.defineProperty(navigator, 'languages', {get: () => ['en-IN', 'en-US', 'en']});
"""


class PlaywrightSessionFactoryImpl(IBrowserSessionFactory):
    def __init__(
        self,
        *,
        base_url: str,
        screenshot_dir: Path,
        headless: bool = True,
        slow_mo_ms: int = 50,
        default_timeout_ms: int = 30000,
        launch_args: List[str] | None = None,
        locale: str = 'en-IN',
        timezone_id: str = 'Asia/Kolkata',
    ) -> None:
        self.base_url = base_url
        self.screenshot_dir = screenshot_dir
        self.headless = headless
        self.slow_mo_ms = slow_mo_ms
        self.default_timeout_ms = default_timeout_ms
        self.launch_args = launch_args or []
        self.locale = locale
        self.timezone_id = timezone_id

    @asynccontextmanager
    async def open(self) -> AsyncIterator[IBrowserSession]:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(
                headless=self.headless, slow_mo=self.slow_mo_ms, args=self.launch_args
            )
            try:
                context = await browser.new_context(
                    viewport={'width': 1920, 'height': 1080},
                    user_agent=_USER_AGENT,
                    locale=self.locale,
                    timezone_id=self.timezone_id,
                )
                await context.add_init_script(_STEALTH_SCRIPT)
                page = await context.new_page()
                page.set_default_timeout(self.default_timeout_ms)
                page.set_default_navigation_timeout(self.default_timeout_ms)
                Logger.base.debug('🌐 [BROWSER] Session opened')

                yield PlaywrightBrowserSession(
                    page=page, base_url=self.base_url, screenshot_dir=self.screenshot_dir
                )
            finally:
                try:
                    await browser.close()
                    Logger.base.debug('🌐 [BROWSER] Session closed')
                except Exception as e:
                    Logger.base.warning(f'⚠️ [BROWSER] Close failed: {e}')
