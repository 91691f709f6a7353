"""
Query lifecycle - submission, execution, history.

A Query is created `running`, announced, executed and then written exactly
once to `success` or `error`:

    begin()     -> Query(running)  + query:update broadcast
    complete()  -> Query(terminal) + query:result broadcast
    submit()    -> begin() + complete()

The terminal write is a conditional UPDATE on `status = 'running'`, so a
query can never be re-opened or finished twice.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError

from ..core.errors import AccessDeniedError, NotFoundError, QueryJamError
from ..core.query_types import (
    ExecutionResult,
    QuerySubmission,
    QuerySummary,
    SubmitQueryResponse,
)
from ..core.validator import QueryValidator
from ..iam.access import can_edit, has_access, is_owner
from ..messaging.hub import BroadcastHub
from ..service.database import Database
from ..service.models import Query, QueryStatus, Session, utcnow
from .context import Principal
from .executor import QueryEngine
from .sessions import load_session, require_user

logger = logging.getLogger(__name__)


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


class QueryLifecycleManager:
    """
    Drives a query from submission to its terminal state.

    Usage:
        manager = QueryLifecycleManager(database, engine, hub)
        response = await manager.submit(principal, QuerySubmission(
            session_id=session.id,
            dataset_id=dataset.id,
            query_text='{"filter": {"age": {"$gt": 30}}, "limit": 5}',
        ))
    """

    def __init__(
        self,
        database: Database,
        engine: QueryEngine,
        hub: BroadcastHub,
        validator: Optional[QueryValidator] = None,
    ):
        self.database = database
        self.engine = engine
        self.hub = hub
        self.validator = validator or QueryValidator()

    async def submit(self, principal: Principal, submission: QuerySubmission) -> SubmitQueryResponse:
        """
        Execute a query submission end to end.

        Raises:
            AuthenticationError: No principal
            NotFoundError: Unknown session
            AccessDeniedError: Caller cannot edit the session
            ValidationError: Denylisted operator (no Query is created)
        """
        query = await self.begin(principal, submission)
        return await self.complete(query)

    async def begin(self, principal: Principal, submission: QuerySubmission) -> Query:
        """Check permissions, create the running Query and announce it."""
        user_id = require_user(principal)

        async with self.database.session() as db:
            session = await load_session(db, submission.session_id)
            if not can_edit(session, user_id):
                raise AccessDeniedError("You do not have permission to execute queries in this session")

            self.validator.ensure_safe(submission.query_text)

            query = Query(
                session_id=session.id,
                user_id=user_id,
                dataset_id=submission.dataset_id or session.active_dataset_id,
                query_text=submission.query_text,
                query_type=submission.query_type,
                status=QueryStatus.RUNNING.value,
                execution_time=0,
                created_at=utcnow(),
            )
            db.add(query)
            await db.commit()

        logger.info(f"Query {query.id} started in session {query.session_id} by {user_id}")
        self.hub.query_started(query.session_id, QuerySummary.from_record(query).to_wire(), user_id)
        return query

    async def complete(self, query: Query) -> SubmitQueryResponse:
        """Run a running Query, persist its terminal state and announce it."""
        errors, request = self.validator.parse(query.query_text)
        if errors:
            result = ExecutionResult.failure("; ".join(errors))
        else:
            try:
                result = await self.engine.execute(query.dataset_id, request)
            except Exception as e:
                logger.error(f"Query {query.id} crashed: {e}", exc_info=True)
                result = ExecutionResult.failure(str(e) or e.__class__.__name__)

        try:
            await self._finish(query, result)
        except SQLAlchemyError as e:
            logger.error(f"Failed to record result of query {query.id}: {e}", exc_info=True)
            await self._fail_unrecorded(query, result)
            raise QueryJamError("Failed to save query result")

        self.hub.query_finished(
            query.session_id,
            query.id,
            success=result.success,
            count=result.count,
            execution_time=result.execution_time,
            user_id=query.user_id,
            status=query.status,
        )

        return SubmitQueryResponse(
            success=result.success,
            query_id=query.id,
            results=result.results(),
            execution_time=result.execution_time,
            error=result.error,
        )

    async def _finish(self, query: Query, result: ExecutionResult) -> None:
        status = QueryStatus.SUCCESS if result.success else QueryStatus.ERROR
        values = {
            "status": status.value,
            "results": result.results().model_dump(mode="json"),
            "execution_time": result.execution_time,
            "error_message": result.error,
        }

        async with self.database.session() as db:
            outcome = await db.execute(
                update(Query)
                .where(Query.id == query.id, Query.status == QueryStatus.RUNNING.value)
                .values(**values)
            )
            await db.commit()

        if outcome.rowcount != 1:
            raise QueryJamError(f"Query {query.id} is no longer running")

        for key, value in values.items():
            setattr(query, key, value)

        logger.info(f"Query {query.id} finished: {status.value} in {result.execution_time}ms")

    async def _fail_unrecorded(self, query: Query, result: ExecutionResult) -> None:
        """
        The terminal write failed: try once more as `error`, then announce
        the failure either way so members never wait on a running query.
        """
        failure = ExecutionResult.failure(
            "Failed to save query result",
            execution_time=result.execution_time,
        )
        try:
            await self._finish(query, failure)
        except (SQLAlchemyError, QueryJamError) as e:
            logger.error(f"Query {query.id} could not be marked as failed: {e}")

        self.hub.query_finished(
            query.session_id,
            query.id,
            success=False,
            count=0,
            execution_time=failure.execution_time,
            user_id=query.user_id,
            status=QueryStatus.ERROR.value,
        )

    async def history(
        self,
        principal: Principal,
        session_id: str,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> tuple[list[Query], int, int]:
        """
        Session queries, newest first.

        Returns:
            Tuple of (queries, page, limit) with page and limit clamped
        """
        user_id = require_user(principal)
        page = max(int(page), 1)
        limit = min(max(int(limit), 1), MAX_PAGE_SIZE)

        async with self.database.session() as db:
            session = await load_session(db, session_id)
            if not has_access(session, user_id):
                raise AccessDeniedError("You do not have access to this session")

            result = await db.execute(
                select(Query)
                .where(Query.session_id == session_id)
                .order_by(Query.created_at.desc(), Query.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            return list(result.scalars().all()), page, limit

    async def get(self, principal: Principal, query_id: str) -> Query:
        user_id = require_user(principal)

        async with self.database.session() as db:
            query = await db.get(Query, query_id)
            if query is None:
                raise NotFoundError("Query", query_id)

            session = await db.get(Session, query.session_id)
            if query.user_id != user_id and (session is None or not has_access(session, user_id)):
                raise AccessDeniedError("You do not have access to this query")
            return query

    async def delete(self, principal: Principal, query_id: str) -> None:
        """Delete a query; allowed for its author and the session owner."""
        user_id = require_user(principal)

        async with self.database.session() as db:
            query = await db.get(Query, query_id)
            if query is None:
                raise NotFoundError("Query", query_id)

            session = await db.get(Session, query.session_id)
            if query.user_id != user_id and not (session and is_owner(session, user_id)):
                raise AccessDeniedError("You do not have permission to delete this query")

            await db.delete(query)
            await db.commit()

        logger.info(f"Query {query_id} deleted by {user_id}")


def summarize(queries: list[Query]) -> list[QuerySummary]:
    """History rows without result data."""
    return [QuerySummary.from_record(q) for q in queries]
