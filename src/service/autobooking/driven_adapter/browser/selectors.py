"""
Target site selectors.

Each entry is a comma-separated Playwright selector list; the first match
wins. One module per site revision keeps layout changes in one place.
"""

SEARCH_INPUT = 'input[placeholder*="Search"]'
SEARCH_RESULT = '[data-testid="movie-card"], .search-result a'

DATE_PILL = '.date-selector a, [data-testid="date-pill"]'
VENUE_LIST = '.venue-list, [data-testid="venue-list"]'
VENUE_ROW = '.venue-details, [data-testid="venue-row"]'
SHOWTIME_LINK = 'a[href*="/buytickets/"], button.showtime-pill, [data-testid="showtime-pill"]'

SEAT_COUNT_DIALOG = 'text="How many seats?"'
SELECT_SEATS_BUTTON = 'button:has-text("Select Seats"), div:has-text("Select Seats")'
SEAT_LAYOUT = '.seat-layout, [data-testid="seat-layout"], .seatlayout'
SEAT_ROW = '.seat-row, [data-row]'
SEAT = '.seat, [data-seat]'
PROCEED_BUTTON = 'button:has-text("Proceed"), button:has-text("Pay")'

GIFT_CARD_OPTION = '[data-testid="gift-card"], button:has-text("Gift Card")'
GIFT_CARD_NUMBER_INPUT = 'input[placeholder*="Card Number"], input[name="giftcard"]'
GIFT_CARD_PIN_INPUT = 'input[placeholder*="PIN"], input[name="pin"]'
GIFT_CARD_APPLY = 'button:has-text("Apply"), button:has-text("Redeem")'
GIFT_CARD_APPLIED = '.gift-card-balance, [data-testid="gc-balance"]'
GIFT_CARD_ERROR = '.error, [data-testid="gc-error"]'
PAY_BUTTON = 'button:has-text("Pay"), button:has-text("Complete")'
TOTAL_AMOUNT = '.total-amount, [data-testid="total-amount"]'
BOOKING_CONFIRMATION = '.booking-confirmation, [data-testid="booking-success"]'
BOOKING_ID = '.booking-id, [data-testid="booking-id"]'
ERROR_MESSAGE = '.error-message, [data-testid="error"]'


def seat_selector(*, row: str, number: int) -> str:
    return (
        f'[data-seat-id="{row}-{number}"], '
        f'#seat-{row}-{number}, '
        f'[data-row="{row}"] [data-seat="{number}"]'
    )


# Reads the rendered seat map into {rows: [{label, seats: [...]}]}
READ_SEAT_MAP_JS = """
(args) => {
    const rows = [];
    document.querySelectorAll(args.rowSelector).forEach((rowEl, rowIndex) => {
        const label = rowEl.getAttribute('data-row') || String.fromCharCode(65 + rowIndex);
        const seats = [];
        rowEl.querySelectorAll(args.seatSelector).forEach((seatEl, seatIndex) => {
            const unavailable = ['sold', 'unavailable', 'blocked', 'seat--sold']
                .some((cls) => seatEl.classList.contains(cls));
            seats.push({
                number: parseInt(seatEl.getAttribute('data-seat') || String(seatIndex + 1), 10),
                available: !unavailable,
                category: seatEl.getAttribute('data-category') || '',
                price: parseFloat(seatEl.getAttribute('data-price') || '0'),
            });
        });
        if (seats.length > 0) {
            rows.push({label, seats});
        }
    });
    return {rows};
}
"""
