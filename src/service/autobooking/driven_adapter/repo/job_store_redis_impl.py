"""
Job Store Redis Implementation

Storage Format:
    Key: autobooking:job:{job_id}
    Type: Hash
    Fields:
        - id, user_id, movie_title, city: str
        - theatres, times, gift_cards: JSON array string
        - seat_preference: JSON object string
        - status: JobStatus value
        - attempts, consecutive_watch_errors: int
        - last_error: str ('' = none)
        - watch_until, committed_at, created_at, updated_at: ISO timestamp ('' = none)
        - notify_only_success: '1' / '0' / '' (inherit user preference)
        - booking_result: JSON object string ('' = none)
        - preferred_date: ISO date ('' = any day)
        - matched_theatre, matched_time: showtime claimed for booking ('' = none)

    Key: autobooking:jobs:{status}
    Type: Set of job ids (status index, kept in step by the Lua scripts)
"""

from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Collection, Dict, List, Optional

import orjson
from redis.asyncio import Redis

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.state.lua_script_executor import LuaScripts
from src.service.autobooking.app.interface.i_job_store import IJobStore
from src.service.autobooking.domain.entity.booking_job_entity import BookingJob
from src.service.autobooking.domain.enum.job_status import JobStatus
from src.service.autobooking.domain.value_object.booking_result import BookingResult
from src.service.autobooking.domain.value_object.gift_card_ref import GiftCardRef
from src.service.autobooking.domain.value_object.seat_preference import SeatPreference


_KEY_PREFIX = settings.REDIS_KEY_PREFIX

job_store_lua_scripts = LuaScripts(scripts_dir=Path(__file__).parent / 'lua_scripts')


def _job_key(job_id: str) -> str:
    return f'{_KEY_PREFIX}autobooking:job:{job_id}'


def _index_prefix() -> str:
    return f'{_KEY_PREFIX}autobooking:jobs:'


def _index_key(status: JobStatus) -> str:
    return f'{_index_prefix()}{status}'


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _iso(value: Optional[datetime]) -> str:
    return value.isoformat() if value else ''


def _parse_iso(value: str) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _parse_date(value: str) -> Optional[date]:
    return date.fromisoformat(value) if value else None


def _to_hash(job: BookingJob) -> Dict[str, Any]:
    if job.notify_only_success is None:
        notify_only_success = ''
    else:
        notify_only_success = '1' if job.notify_only_success else '0'

    return {
        'id': job.id,
        'user_id': job.user_id,
        'movie_title': job.movie_title,
        'city': job.city,
        'theatres': orjson.dumps(job.theatres).decode(),
        'times': orjson.dumps(job.times).decode(),
        'seat_preference': orjson.dumps(job.seat_preference.to_dict()).decode(),
        'gift_cards': orjson.dumps([ref.card_id for ref in job.gift_cards]).decode(),
        'preferred_date': job.preferred_date.isoformat() if job.preferred_date else '',
        'status': str(job.status),
        'attempts': job.attempts,
        'last_error': job.last_error or '',
        'watch_until': _iso(job.watch_until),
        'notify_only_success': notify_only_success,
        'committed_at': _iso(job.committed_at),
        'booking_result': orjson.dumps(job.booking_result.to_dict()).decode()
        if job.booking_result
        else '',
        'consecutive_watch_errors': job.consecutive_watch_errors,
        'matched_theatre': job.matched_theatre or '',
        'matched_time': job.matched_time or '',
        'created_at': _iso(job.created_at),
        'updated_at': _iso(job.updated_at),
    }


def _from_hash(data: Dict[str, str]) -> BookingJob:
    notify_only_success = data.get('notify_only_success', '')
    booking_result = data.get('booking_result', '')

    return BookingJob(
        id=data['id'],
        user_id=data['user_id'],
        movie_title=data['movie_title'],
        city=data['city'],
        theatres=orjson.loads(data['theatres']),
        times=orjson.loads(data['times']),
        seat_preference=SeatPreference.from_dict(orjson.loads(data['seat_preference'])),
        gift_cards=[GiftCardRef(card_id=card_id) for card_id in orjson.loads(data['gift_cards'])],
        preferred_date=_parse_date(data.get('preferred_date', '')),
        status=JobStatus(data['status']),
        attempts=int(data.get('attempts', 0)),
        last_error=data.get('last_error') or None,
        watch_until=_parse_iso(data.get('watch_until', '')),
        notify_only_success=None if notify_only_success == '' else notify_only_success == '1',
        committed_at=_parse_iso(data.get('committed_at', '')),
        booking_result=BookingResult.from_dict(orjson.loads(booking_result))
        if booking_result
        else None,
        consecutive_watch_errors=int(data.get('consecutive_watch_errors', 0)),
        matched_theatre=data.get('matched_theatre') or None,
        matched_time=data.get('matched_time') or None,
        created_at=_parse_iso(data.get('created_at', '')),
        updated_at=_parse_iso(data.get('updated_at', '')),
    )


def _decode(raw: Dict[Any, Any]) -> Dict[str, str]:
    return {
        k.decode() if isinstance(k, bytes) else k: v.decode() if isinstance(v, bytes) else v
        for k, v in raw.items()
    }


class JobStoreRedisImpl(IJobStore):
    def __init__(self, *, client: Redis) -> None:
        self.client = client

    @Logger.io
    async def save(self, *, job: BookingJob) -> BookingJob:
        async with self.client.pipeline(transaction=True) as pipe:
            for status in JobStatus:
                if status != job.status:
                    pipe.srem(_index_key(status), job.id)
            pipe.hset(_job_key(job.id), mapping=_to_hash(job))
            pipe.sadd(_index_key(job.status), job.id)
            await pipe.execute()

        Logger.base.info(f'💾 [JOB-STORE] Saved job {job.short_id} ({job.status})')
        return job

    async def get(self, *, job_id: str) -> Optional[BookingJob]:
        raw = await self.client.hgetall(_job_key(job_id))  # type: ignore
        if not raw:
            return None
        return _from_hash(_decode(raw))

    @Logger.io
    async def delete(self, *, job_id: str) -> bool:
        status = await self.client.hget(_job_key(job_id), 'status')  # type: ignore
        if status is None:
            return False

        async with self.client.pipeline(transaction=True) as pipe:
            pipe.delete(_job_key(job_id))
            pipe.srem(_index_key(JobStatus(status)), job_id)
            await pipe.execute()
        return True

    async def list_by_status(self, *, statuses: Collection[JobStatus]) -> List[BookingJob]:
        job_ids: List[str] = []
        for status in statuses:
            job_ids.extend(sorted(await self.client.smembers(_index_key(status))))  # type: ignore
        if not job_ids:
            return []

        async with self.client.pipeline(transaction=False) as pipe:
            for job_id in job_ids:
                pipe.hgetall(_job_key(job_id))
            rows = await pipe.execute()

        # Index entries whose hash is gone are skipped
        return [_from_hash(_decode(row)) for row in rows if row]

    @Logger.io
    async def transition_status(
        self,
        *,
        job_id: str,
        from_statuses: Collection[JobStatus],
        to_status: JobStatus,
        last_error: Optional[str] = None,
        booking_result: Optional[BookingResult] = None,
        increment_attempts: bool = False,
        require_uncommitted: bool = False,
    ) -> Optional[BookingJob]:
        applied = await job_store_lua_scripts.run(
            'transition_status',
            client=self.client,
            keys=[_job_key(job_id)],
            args=[
                _index_prefix(),
                str(to_status),
                _now_iso(),
                '1' if last_error is not None else '0',
                last_error or '',
                orjson.dumps(booking_result.to_dict()).decode() if booking_result else '',
                '1' if increment_attempts else '0',
                '1' if require_uncommitted else '0',
                *[str(status) for status in from_statuses],
            ],
        )
        if not int(applied):
            Logger.base.debug(
                f'⏭️ [JOB-STORE] Transition of {job_id} to {to_status} rejected by guard'
            )
            return None

        return await self.get(job_id=job_id)

    @Logger.io
    async def claim_for_booking(
        self, *, job_id: str, matched_theatre: str, matched_time: str
    ) -> Optional[BookingJob]:
        applied = await job_store_lua_scripts.run(
            'claim_for_booking',
            client=self.client,
            keys=[_job_key(job_id)],
            args=[_index_prefix(), _now_iso(), matched_theatre, matched_time],
        )
        if not int(applied):
            Logger.base.debug(f'⏭️ [JOB-STORE] Claim of {job_id} rejected, no longer watching')
            return None

        return await self.get(job_id=job_id)

    @Logger.io
    async def mark_committed(self, *, job_id: str) -> bool:
        applied = await job_store_lua_scripts.run(
            'mark_committed',
            client=self.client,
            keys=[_job_key(job_id)],
            args=[_now_iso()],
        )
        return bool(int(applied))

    async def record_watch_outcome(self, *, job_id: str, errored: bool) -> int:
        count = int(
            await job_store_lua_scripts.run(
                'record_watch_outcome',
                client=self.client,
                keys=[_job_key(job_id)],
                args=['1' if errored else '0'],
            )
        )
        return max(count, 0)
