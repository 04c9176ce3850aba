from pathlib import Path
from typing import List

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Showtime Autobooker'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Redis Configuration (job store, queues, purchase lock)
    REDIS_HOST: str = 'localhost'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ''
    REDIS_DECODE_RESPONSES: bool = True

    # Redis Connection Pool Configuration
    REDIS_POOL_MAX_CONNECTIONS: int = 20
    REDIS_POOL_SOCKET_TIMEOUT: int = 10  # Socket read/write timeout (seconds)
    REDIS_POOL_SOCKET_CONNECT_TIMEOUT: int = 10
    REDIS_POOL_SOCKET_KEEPALIVE: bool = True
    REDIS_POOL_HEALTH_CHECK_INTERVAL: int = 30

    # Key prefix for test isolation
    REDIS_KEY_PREFIX: str = ''

    # Watch queue: 2 at once, 10 starts per 60s
    WATCH_QUEUE_NAME: str = 'watch'
    WATCH_CONCURRENCY: int = 2
    WATCH_RATE_LIMIT_MAX: int = 10
    WATCH_RATE_LIMIT_WINDOW_SECONDS: float = 60.0
    WATCH_MAX_ATTEMPTS: int = 3
    WATCH_BACKOFF_SECONDS: float = 5.0

    # Booking queue: strictly serialized
    BOOKING_QUEUE_NAME: str = 'booking'
    BOOKING_MAX_ATTEMPTS: int = 1
    BOOKING_LOCK_KEY: str = 'autobooking:lock:purchase'
    BOOKING_LOCK_TTL_SECONDS: int = 900
    BOOKING_LOCK_RETRY_DELAY_SECONDS: float = 15.0
    BOOKING_RECOVERY_GRACE_SECONDS: float = 120.0  # BOOKING jobs older than this get their task re-enqueued

    # Queue polling
    QUEUE_POLL_TIMEOUT_SECONDS: float = 1.0
    QUEUE_DELAYED_PROMOTE_INTERVAL_SECONDS: float = 1.0

    # Scheduler
    SCHEDULER_TICK_SECONDS: float = 60.0
    WATCH_REARM_INTERVAL_SECONDS: float = 300.0
    WATCH_REARM_MAX_BACKOFF_SECONDS: float = 3600.0
    SCHEDULER_TRACKING_TTL_SECONDS: float = 24 * 60 * 60

    # Booking flow
    MAX_BOOKING_ATTEMPTS: int = 5
    BOOKING_STEP_TIMEOUT_SECONDS: float = 45.0
    WATCH_STEP_TIMEOUT_SECONDS: float = 30.0

    # Gift card credentials (AES-256-GCM key, 64 hex chars)
    GIFT_CARD_ENCRYPTION_KEY: SecretStr = SecretStr('0' * 64)

    @field_validator('GIFT_CARD_ENCRYPTION_KEY', mode='after')
    @classmethod
    def validate_encryption_key(cls, v: SecretStr) -> SecretStr:
        raw = v.get_secret_value()
        if len(raw) != 64:
            raise ValueError('GIFT_CARD_ENCRYPTION_KEY must be 32 bytes (64 hex chars)')
        bytes.fromhex(raw)
        return v

    # Telegram delivery
    TELEGRAM_BOT_TOKEN: SecretStr = SecretStr('')
    TELEGRAM_API_BASE_URL: str = 'https://api.telegram.org'
    TELEGRAM_REQUEST_TIMEOUT_SECONDS: float = 10.0

    # Metrics (Prometheus scrape endpoint, 0 disables)
    METRICS_PORT: int = 9108

    # Browser
    BROWSER_HEADLESS: bool = True
    BROWSER_SLOW_MO_MS: int = 50
    BROWSER_DEFAULT_TIMEOUT_MS: int = 30000
    BROWSER_LAUNCH_ARGS: List[str] = [
        '--disable-blink-features=AutomationControlled',
        '--disable-dev-shm-usage',
        '--no-sandbox',
    ]
    TARGET_SITE_BASE_URL: str = 'https://in.bookmyshow.com'
    BROWSER_LOCALE: str = 'en-IN'
    BROWSER_TIMEZONE_ID: str = 'Asia/Kolkata'

    @field_validator('BROWSER_LAUNCH_ARGS', mode='before')
    @classmethod
    def assemble_launch_args(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith('['):
            return [i.strip() for i in v.split(',') if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    @property
    def REDIS_URL(self) -> str:
        return f'redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}'


settings = Settings()  # type: ignore
