from prometheus_client import Counter, Gauge, Histogram


class AutobookingMetrics:
    """
    Autobooking Core Metrics Collector

    Tracks watch cycles against the target site and the serialized booking pipeline
    """

    def __init__(self):
        # ========== Watch Metrics ==========
        self.watch_dispatches = Counter(
            'autobooking_watch_dispatches_total',
            'Watch cycles started against the target site',
        )

        self.watch_cycles = Counter(
            'autobooking_watch_cycles_total',
            'Finished watch cycles',
            ['outcome'],  # found / not_found / error
        )

        self.watch_cycle_duration = Histogram(
            'autobooking_watch_cycle_duration_seconds',
            'Watch cycle duration',
            ['outcome'],
            buckets=[1.0, 2.0, 5.0, 10.0, 20.0, 30.0, 60.0, 120.0],
        )

        # ========== Booking Metrics ==========
        self.booking_attempts = Counter(
            'autobooking_booking_attempts_total',
            'Booking attempts by resulting job status',
            ['outcome'],  # succeeded / watching / failed / cancelled / error
        )

        self.booking_duration = Histogram(
            'autobooking_booking_duration_seconds',
            'Booking attempt duration',
            ['outcome'],
            buckets=[5.0, 10.0, 30.0, 60.0, 120.0, 300.0, 600.0],
        )

        self.active_bookings = Gauge(
            'autobooking_active_bookings',
            'Booking executions in flight (never above 1)',
        )

        self.booking_lock_contention = Counter(
            'autobooking_booking_lock_contention_total',
            'Booking tasks deferred because the purchase lock was held',
        )

        # ========== Scheduler Metrics ==========
        self.watch_armed = Counter(
            'autobooking_watch_armed_total',
            'Watch tasks enqueued by the scheduler',
        )

        self.jobs_expired = Counter(
            'autobooking_jobs_expired_total',
            'Jobs failed because the watch window ended',
        )

        self.bookings_recovered = Counter(
            'autobooking_bookings_recovered_total',
            'BOOKING jobs re-enqueued or released after losing their booking task',
        )

    # ========== Helper Methods ==========

    def record_watch_dispatch(self):
        self.watch_dispatches.inc()

    def record_watch_cycle(self, *, outcome: str, duration: float):
        self.watch_cycles.labels(outcome=outcome).inc()
        self.watch_cycle_duration.labels(outcome=outcome).observe(duration)

    def record_booking_attempt(self, *, outcome: str, duration: float):
        self.booking_attempts.labels(outcome=outcome).inc()
        self.booking_duration.labels(outcome=outcome).observe(duration)


# Global metrics instance
metrics = AutobookingMetrics()
