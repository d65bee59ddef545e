"""
SQL Agent job gateway.

Resolves a job name or id to a JobHandle once, then purges history and
deletes the job by job_id through the msdb system procedures.
"""

from __future__ import annotations

import logging
from uuid import UUID

from mssqladmin.domain.errors import MutationError, StateReadError
from mssqladmin.domain.models import (
    ChangeSpec,
    DropJob,
    JobHandle,
    JobKey,
    JobState,
    PurgeJobHistory,
)
from mssqladmin.infrastructure.sql.connection import SqlSession

logger = logging.getLogger(__name__)

JOB_BY_NAME = "SELECT job_id, name FROM msdb.dbo.sysjobs WHERE name = ?"
JOB_BY_ID = "SELECT job_id, name FROM msdb.dbo.sysjobs WHERE job_id = ?"
PURGE_HISTORY = "EXEC msdb.dbo.sp_purge_jobhistory @job_id = ?"
DELETE_JOB = (
    "EXEC msdb.dbo.sp_delete_job @job_id = ?, @delete_history = ?, "
    "@delete_unused_schedule = ?"
)


class AgentJobGateway:
    """StateReader + ChangeApplier for SQL Agent jobs."""

    def read_state(self, session: SqlSession, key: JobKey) -> JobState:
        if key.job_id is not None:
            sql, params = JOB_BY_ID, (str(key.job_id),)
        elif key.job_name:
            sql, params = JOB_BY_NAME, (key.job_name,)
        else:
            raise StateReadError("Job lookup needs a name or an id", target=session.target.full_name)

        rows = session.execute(sql, params, error_type=StateReadError, action="Job lookup")
        if not rows:
            logger.debug("Job %s not found on %s", key.job_name or key.job_id, session.target)
            return JobState(exists=False)

        row = rows[0]
        handle = JobHandle(job_id=UUID(str(row[0])), name=row[1])
        return JobState(exists=True, handle=handle)

    def apply_change(self, session: SqlSession, change: ChangeSpec) -> None:
        if isinstance(change, PurgeJobHistory):
            logger.info("Purging history of job '%s' on %s", change.handle.name, session.target)
            session.execute(
                PURGE_HISTORY,
                (str(change.handle.job_id),),
                error_type=MutationError,
                action=f"Purge history of '{change.handle.name}'",
            )
        elif isinstance(change, DropJob):
            delete_unused_schedule = 0 if change.keep_unused_schedule else 1
            logger.info(
                "Deleting job '%s' on %s (delete_unused_schedule=%d)",
                change.handle.name, session.target, delete_unused_schedule,
            )
            session.execute(
                DELETE_JOB,
                (str(change.handle.job_id), 0, delete_unused_schedule),
                error_type=MutationError,
                action=f"Delete job '{change.handle.name}'",
            )
        else:
            raise MutationError(
                f"AgentJobGateway cannot apply {type(change).__name__}",
                target=session.target.full_name,
            )
