import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feeledger.api.v1.academic_periods.router import router as academic_periods_router
from feeledger.api.v1.batches.router import router as batches_router
from feeledger.api.v1.fee_types.router import router as fee_types_router
from feeledger.api.v1.fees.repository import PAYMENTS_TABLE, STUDENT_FEES_TABLE
from feeledger.api.v1.fees.router import router as fees_router
from feeledger.api.v1.students.router import router as students_router
from feeledger.core.changes import Change, ChangeFeed
from feeledger.core.config import settings
from feeledger.core.log_config import configure_logging

logger = logging.getLogger(__name__)


def _log_change(change: Change) -> None:
    logger.debug("%s %s %s", change.event.value, change.table, change.record_id)


@asynccontextmanager
async def lifespan(app: FastAPI):
    feed: ChangeFeed = app.state.change_feed
    subscriptions = [feed.subscribe(table, _log_change) for table in (STUDENT_FEES_TABLE, PAYMENTS_TABLE)]
    try:
        yield
    finally:
        for subscription in subscriptions:
            subscription.unsubscribe()


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Fee Ledger Backend", lifespan=lifespan)
    app.state.change_feed = ChangeFeed()

    # CORS: the dashboard calls this API from the browser
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(batches_router)
    app.include_router(students_router)
    app.include_router(academic_periods_router)
    app.include_router(fee_types_router)
    app.include_router(fees_router)

    return app


app = create_app()
