"""
https://python-dependency-injector.ets-labs.org/index.html
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import settings
from src.platform.constant.path import SCREENSHOT_DIR
from src.platform.job_queue.redis_job_queue import RedisJobQueue
from src.platform.job_queue.sliding_window_rate_limiter import SlidingWindowRateLimiter
from src.platform.state.distributed_lock import DistributedLock
from src.platform.state.redis_client import redis_client
from src.service.autobooking.app.command.arm_watch_job_use_case import ArmWatchJobUseCase
from src.service.autobooking.app.command.cancel_booking_job_use_case import (
    CancelBookingJobUseCase,
)
from src.service.autobooking.app.command.expire_stale_jobs_use_case import (
    ExpireStaleJobsUseCase,
)
from src.service.autobooking.app.command.process_booking_job_use_case import (
    ProcessBookingJobUseCase,
)
from src.service.autobooking.app.command.process_watch_job_use_case import (
    ProcessWatchJobUseCase,
)
from src.service.autobooking.app.command.recover_stranded_bookings_use_case import (
    RecoverStrandedBookingsUseCase,
)
from src.service.autobooking.app.service.booking_flow import BookingFlow
from src.service.autobooking.app.service.notification_service import NotificationService
from src.service.autobooking.driven_adapter.browser.playwright_session_factory_impl import (
    PlaywrightSessionFactoryImpl,
)
from src.service.autobooking.driven_adapter.credential.gift_card_cipher import GiftCardCipher
from src.service.autobooking.driven_adapter.credential.gift_card_credential_store_impl import (
    GiftCardCredentialStoreImpl,
)
from src.service.autobooking.driven_adapter.notification.telegram_notification_sender_impl import (
    TelegramNotificationSenderImpl,
)
from src.service.autobooking.driven_adapter.preference.user_preference_query_redis_impl import (
    UserPreferenceQueryRedisImpl,
)
from src.service.autobooking.driven_adapter.queue.booking_task_publisher_impl import (
    BookingTaskPublisherImpl,
)
from src.service.autobooking.driven_adapter.queue.watch_task_publisher_impl import (
    WatchTaskPublisherImpl,
)
from src.service.autobooking.driven_adapter.repo.job_store_redis_impl import JobStoreRedisImpl
from src.service.autobooking.driving_adapter.scheduler.watch_scheduler import WatchScheduler
from src.service.autobooking.driving_adapter.worker.booking_worker import BookingWorker
from src.service.autobooking.driving_adapter.worker.watch_worker import WatchWorker


class Container(containers.DeclarativeContainer):
    # Redis client is resolved lazily; redis_client.initialize() runs at worker startup
    redis = providers.Factory(redis_client.get_client)

    # Queues
    watch_queue = providers.Singleton(
        RedisJobQueue,
        client=redis,
        name=settings.WATCH_QUEUE_NAME,
        max_attempts=settings.WATCH_MAX_ATTEMPTS,
        backoff_seconds=settings.WATCH_BACKOFF_SECONDS,
    )
    booking_queue = providers.Singleton(
        RedisJobQueue,
        client=redis,
        name=settings.BOOKING_QUEUE_NAME,
        max_attempts=settings.BOOKING_MAX_ATTEMPTS,
    )
    watch_rate_limiter = providers.Singleton(
        SlidingWindowRateLimiter,
        max_events=settings.WATCH_RATE_LIMIT_MAX,
        window_seconds=settings.WATCH_RATE_LIMIT_WINDOW_SECONDS,
    )

    # New lock object per booking attempt; the key is shared across processes
    purchase_lock = providers.Factory(
        DistributedLock,
        client=redis,
        key=f'{settings.REDIS_KEY_PREFIX}{settings.BOOKING_LOCK_KEY}',
        ttl=settings.BOOKING_LOCK_TTL_SECONDS,
    )

    # Driven adapters
    job_store = providers.Singleton(JobStoreRedisImpl, client=redis)
    watch_task_publisher = providers.Singleton(WatchTaskPublisherImpl, queue=watch_queue)
    booking_task_publisher = providers.Singleton(BookingTaskPublisherImpl, queue=booking_queue)

    gift_card_cipher = providers.Singleton(
        GiftCardCipher,
        key_hex=providers.Callable(settings.GIFT_CARD_ENCRYPTION_KEY.get_secret_value),
    )
    credential_store = providers.Singleton(
        GiftCardCredentialStoreImpl, client=redis, cipher=gift_card_cipher
    )
    user_preference_query = providers.Singleton(UserPreferenceQueryRedisImpl, client=redis)
    notification_sender = providers.Singleton(
        TelegramNotificationSenderImpl,
        bot_token=providers.Callable(settings.TELEGRAM_BOT_TOKEN.get_secret_value),
        api_base_url=settings.TELEGRAM_API_BASE_URL,
        timeout_seconds=settings.TELEGRAM_REQUEST_TIMEOUT_SECONDS,
    )
    browser_session_factory = providers.Singleton(
        PlaywrightSessionFactoryImpl,
        base_url=settings.TARGET_SITE_BASE_URL,
        screenshot_dir=SCREENSHOT_DIR,
        headless=settings.BROWSER_HEADLESS,
        slow_mo_ms=settings.BROWSER_SLOW_MO_MS,
        default_timeout_ms=settings.BROWSER_DEFAULT_TIMEOUT_MS,
        launch_args=settings.BROWSER_LAUNCH_ARGS,
        locale=settings.BROWSER_LOCALE,
        timezone_id=settings.BROWSER_TIMEZONE_ID,
    )

    # App services
    notification_service = providers.Singleton(
        NotificationService,
        sender=notification_sender,
        user_preference_query=user_preference_query,
    )
    booking_flow = providers.Singleton(
        BookingFlow,
        browser_session_factory=browser_session_factory,
        credential_store=credential_store,
        job_store=job_store,
        step_timeout_seconds=settings.BOOKING_STEP_TIMEOUT_SECONDS,
    )

    # Use cases
    process_watch_job_use_case = providers.Singleton(
        ProcessWatchJobUseCase,
        job_store=job_store,
        browser_session_factory=browser_session_factory,
        booking_task_publisher=booking_task_publisher,
        notification_service=notification_service,
        step_timeout_seconds=settings.WATCH_STEP_TIMEOUT_SECONDS,
    )
    process_booking_job_use_case = providers.Singleton(
        ProcessBookingJobUseCase,
        job_store=job_store,
        booking_flow=booking_flow,
        notification_service=notification_service,
        max_booking_attempts=settings.MAX_BOOKING_ATTEMPTS,
    )
    cancel_booking_job_use_case = providers.Singleton(
        CancelBookingJobUseCase,
        job_store=job_store,
        notification_service=notification_service,
    )
    expire_stale_jobs_use_case = providers.Singleton(
        ExpireStaleJobsUseCase,
        job_store=job_store,
        notification_service=notification_service,
    )
    arm_watch_job_use_case = providers.Singleton(
        ArmWatchJobUseCase,
        job_store=job_store,
        watch_task_publisher=watch_task_publisher,
        notification_service=notification_service,
    )
    recover_stranded_bookings_use_case = providers.Singleton(
        RecoverStrandedBookingsUseCase,
        job_store=job_store,
        booking_task_publisher=booking_task_publisher,
        grace_seconds=settings.BOOKING_RECOVERY_GRACE_SECONDS,
    )

    # Driving adapters
    watch_worker = providers.Singleton(
        WatchWorker,
        queue=watch_queue,
        process_watch_job_use_case=process_watch_job_use_case,
        job_store=job_store,
        concurrency=settings.WATCH_CONCURRENCY,
        rate_limiter=watch_rate_limiter,
        poll_timeout_seconds=settings.QUEUE_POLL_TIMEOUT_SECONDS,
        promote_interval_seconds=settings.QUEUE_DELAYED_PROMOTE_INTERVAL_SECONDS,
    )
    booking_worker = providers.Singleton(
        BookingWorker,
        queue=booking_queue,
        process_booking_job_use_case=process_booking_job_use_case,
        lock_factory=purchase_lock.provider,
        lock_retry_delay_seconds=settings.BOOKING_LOCK_RETRY_DELAY_SECONDS,
        poll_timeout_seconds=settings.QUEUE_POLL_TIMEOUT_SECONDS,
        promote_interval_seconds=settings.QUEUE_DELAYED_PROMOTE_INTERVAL_SECONDS,
    )
    watch_scheduler = providers.Singleton(
        WatchScheduler,
        job_store=job_store,
        arm_watch_job_use_case=arm_watch_job_use_case,
        expire_stale_jobs_use_case=expire_stale_jobs_use_case,
        recover_stranded_bookings_use_case=recover_stranded_bookings_use_case,
        tick_seconds=settings.SCHEDULER_TICK_SECONDS,
        rearm_interval_seconds=settings.WATCH_REARM_INTERVAL_SECONDS,
        max_backoff_seconds=settings.WATCH_REARM_MAX_BACKOFF_SECONDS,
        tracking_ttl_seconds=settings.SCHEDULER_TRACKING_TTL_SECONDS,
    )


container = Container()


def cleanup() -> None:
    container.reset_singletons()
