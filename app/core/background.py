"""Isolation boundary for fire-and-forget jobs.

Commission calculation, auto-assignment, workflow auto-enrollment,
notification emails and tracking writes all run *after* the request
that triggered them has produced its response.  Each job gets its own
``AsyncSession`` so a failure can never roll back, or leak into, the
originating request's unit of work.
"""

import logging
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

Job = Callable[..., Awaitable[Any]]


class BackgroundJobRunner:
    """Run a job in a fresh session, commit on success, log on failure.

    Parameters:
        session_factory: An async context-manager callable that yields
            an ``AsyncSession`` (e.g. ``AsyncSessionLocal``).
    """

    def __init__(self, session_factory: Callable[..., AsyncSession]) -> None:
        self._session_factory = session_factory

    async def run(self, job_name: str, job: Job, **kwargs: Any) -> bool:
        """Execute ``job(session, **kwargs)``; never raises.

        Returns ``True`` if the job committed, ``False`` if it failed.
        """
        async with self._session_factory() as session:
            try:
                await job(session, **kwargs)
                await session.commit()
                return True
            except Exception:
                await session.rollback()
                logger.error(
                    "Background job %s failed (%s)",
                    job_name,
                    kwargs,
                    exc_info=True,
                )
                return False
