"""
Playwright bindings of the screen capabilities.

All three screens share one Page so navigation state carries across the
purchase. Methods raise on unexpected page state; the booking flow maps
those errors to its own failure kinds.
"""

from datetime import date, datetime, timezone
from pathlib import Path
import re
from typing import List, Optional
from urllib.parse import quote

from playwright.async_api import Error as PlaywrightError, Page, TimeoutError as PlaywrightTimeoutError

from src.platform.logging.loguru_io import Logger
from src.service.autobooking.app.interface.i_browser_session import (
    IBrowserSession,
    IPaymentScreen,
    ISeatScreen,
    IShowtimeScreen,
)
from src.service.autobooking.driven_adapter.browser import selectors
from src.service.autobooking.domain.value_object.gift_card_ref import GiftCardCredential
from src.service.autobooking.domain.value_object.seat_map import Seat, SeatMap


_SHORT_WAIT_MS = 5000
_CONFIRMATION_WAIT_MS = 20000
_AMOUNT_PATTERN = re.compile(r'\d[\d,]*(?:\.\d+)?')


async def _is_visible(page: Page, selector: str, *, timeout_ms: int = _SHORT_WAIT_MS) -> bool:
    try:
        await page.locator(selector).first.wait_for(state='visible', timeout=timeout_ms)
        return True
    except PlaywrightTimeoutError:
        return False


def parse_amount(text: str) -> Optional[float]:
    """'₹ 1,250.00' → 1250.0; None when the text holds no number."""
    match = _AMOUNT_PATTERN.search(text)
    if match is None:
        return None
    return float(match.group().replace(',', ''))


class PlaywrightShowtimeScreen(IShowtimeScreen):
    def __init__(self, *, page: Page, base_url: str) -> None:
        self.page = page
        self.base_url = base_url.rstrip('/')
        self._opened_theatre: Optional[str] = None
        self._opened_time: Optional[str] = None

    async def open_movie(self, *, city: str, movie_title: str) -> bool:
        url = f'{self.base_url}/explore/movies-{quote(city.lower())}'
        Logger.base.debug(f'🌐 [BROWSER] Open {url} for "{movie_title}"')
        await self.page.goto(url, wait_until='domcontentloaded')

        search = self.page.locator(selectors.SEARCH_INPUT).first
        await search.click()
        await search.fill(movie_title)

        result = self.page.locator(selectors.SEARCH_RESULT).filter(has_text=movie_title).first
        try:
            await result.wait_for(state='visible', timeout=_SHORT_WAIT_MS)
        except PlaywrightTimeoutError:
            return False

        await result.click()
        await self.page.wait_for_load_state('domcontentloaded')
        self._opened_theatre = self._opened_time = None
        return await _is_visible(self.page, selectors.VENUE_LIST, timeout_ms=15000)

    def _showtime_link(self, *, theatre: str, time: str):
        venue = self.page.locator(selectors.VENUE_ROW).filter(has_text=theatre).first
        return venue.locator(selectors.SHOWTIME_LINK).filter(has_text=time).first

    async def _return_to_listing(self) -> None:
        # The showtime links only exist on the listing, not on a seat layout page
        if self._opened_theatre is None:
            return
        await self.page.go_back(wait_until='domcontentloaded')
        self._opened_theatre = self._opened_time = None

    async def select_date(self, *, day: date) -> bool:
        await self._return_to_listing()
        pill = (
            self.page.locator(selectors.DATE_PILL)
            .filter(has_text=re.compile(rf'\b{day.day}\b'))
            .first
        )
        if await pill.count() == 0:
            return False
        await pill.click()
        await self.page.wait_for_load_state('domcontentloaded')
        return await _is_visible(self.page, selectors.VENUE_LIST, timeout_ms=15000)

    async def find_showtime(self, *, theatre: str, time: str) -> bool:
        await self._return_to_listing()
        return await self._showtime_link(theatre=theatre, time=time).count() > 0

    async def read_seat_map(self, *, theatre: str, time: str) -> SeatMap:
        if (self._opened_theatre, self._opened_time) != (theatre, time):
            await self._return_to_listing()
            await self._showtime_link(theatre=theatre, time=time).click()
            await self.page.wait_for_load_state('domcontentloaded')
            self._opened_theatre, self._opened_time = theatre, time

        if await _is_visible(self.page, selectors.SEAT_COUNT_DIALOG, timeout_ms=2000):
            await self.page.locator(selectors.SELECT_SEATS_BUTTON).first.click()

        await self.page.locator(selectors.SEAT_LAYOUT).first.wait_for(state='visible')
        raw = await self.page.evaluate(
            selectors.READ_SEAT_MAP_JS,
            {'rowSelector': selectors.SEAT_ROW, 'seatSelector': selectors.SEAT},
        )
        seat_map = SeatMap.from_dict(raw)
        Logger.base.debug(
            f'🪑 [BROWSER] {theatre} @ {time}: {len(seat_map.rows)} rows, '
            f'{seat_map.free_seat_count} free'
        )
        return seat_map


class PlaywrightSeatScreen(ISeatScreen):
    def __init__(self, *, page: Page) -> None:
        self.page = page

    async def select_seats(self, *, seats: List[Seat]) -> None:
        for seat in seats:
            locator = self.page.locator(selectors.seat_selector(row=seat.row, number=seat.number))
            if await locator.count() == 0:
                raise LookupError(f'Seat {seat.label} not found on page')
            await locator.first.click()

    async def commit_hold(self) -> None:
        await self.page.locator(selectors.PROCEED_BUTTON).first.click()
        await self.page.wait_for_load_state('domcontentloaded')


class PlaywrightPaymentScreen(IPaymentScreen):
    def __init__(self, *, page: Page) -> None:
        self.page = page

    async def apply_gift_card(self, *, credential: GiftCardCredential) -> bool:
        option = self.page.locator(selectors.GIFT_CARD_OPTION).first
        if await option.is_visible():
            await option.click()

        await self.page.locator(selectors.GIFT_CARD_NUMBER_INPUT).first.fill(credential.card_number)
        await self.page.locator(selectors.GIFT_CARD_PIN_INPUT).first.fill(credential.pin)
        await self.page.locator(selectors.GIFT_CARD_APPLY).first.click()

        if await _is_visible(self.page, selectors.GIFT_CARD_APPLIED):
            return True
        if await _is_visible(self.page, selectors.GIFT_CARD_ERROR, timeout_ms=1000):
            message = await self.page.locator(selectors.GIFT_CARD_ERROR).first.text_content()
            Logger.base.info(f'💳 [BROWSER] Card {credential.masked_number} rejected: {message}')
        return False

    async def read_total_amount(self) -> Optional[float]:
        if not await _is_visible(self.page, selectors.TOTAL_AMOUNT, timeout_ms=2000):
            return None
        text = await self.page.locator(selectors.TOTAL_AMOUNT).first.text_content()
        return parse_amount(text or '')

    async def confirm(self) -> str:
        await self.page.locator(selectors.PAY_BUTTON).first.click()
        if not await _is_visible(
            self.page, selectors.BOOKING_CONFIRMATION, timeout_ms=_CONFIRMATION_WAIT_MS
        ):
            error = ''
            if await _is_visible(self.page, selectors.ERROR_MESSAGE, timeout_ms=1000):
                error = (await self.page.locator(selectors.ERROR_MESSAGE).first.text_content()) or ''
            raise RuntimeError(f'No booking confirmation shown {error}'.strip())

        booking_id = await self.page.locator(selectors.BOOKING_ID).first.text_content()
        return (booking_id or '').strip()


class PlaywrightBrowserSession(IBrowserSession):
    def __init__(self, *, page: Page, base_url: str, screenshot_dir: Path) -> None:
        self.page = page
        self.screenshot_dir = screenshot_dir
        self._showtime_screen = PlaywrightShowtimeScreen(page=page, base_url=base_url)
        self._seat_screen = PlaywrightSeatScreen(page=page)
        self._payment_screen = PlaywrightPaymentScreen(page=page)

    @property
    def showtime_screen(self) -> IShowtimeScreen:
        return self._showtime_screen

    @property
    def seat_screen(self) -> ISeatScreen:
        return self._seat_screen

    @property
    def payment_screen(self) -> IPaymentScreen:
        return self._payment_screen

    async def capture_evidence(self, *, label: str) -> Optional[str]:
        self.screenshot_dir.mkdir(parents=True, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S')
        path = self.screenshot_dir / f'{label}-{stamp}.png'
        try:
            await self.page.screenshot(path=str(path), full_page=True)
        except PlaywrightError as e:
            Logger.base.warning(f'⚠️ [BROWSER] Screenshot {label} failed: {e}')
            return None
        Logger.base.info(f'📸 [BROWSER] Saved {path}')
        return str(path)
