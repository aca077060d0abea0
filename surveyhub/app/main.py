# app/main.py
import logging
from fastapi import FastAPI
from surveyhub.app.core.config import settings
from surveyhub.app.core.logging import configure_logging
from surveyhub.db.session import engine
from surveyhub.db import Base
from surveyhub.db import models  # noqa: F401  registers tables on Base.metadata
from surveyhub.app.routers import surveys, responses, assignments, retention, csv_transfer

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, debug=settings.DEBUG)

app.include_router(surveys.router)
app.include_router(responses.router)
app.include_router(assignments.router)
app.include_router(retention.router)
app.include_router(csv_transfer.router)


@app.on_event("startup")
async def on_startup():
    configure_logging()
    Base.metadata.create_all(bind=engine)
    logger.info("%s started", settings.APP_NAME)


@app.get("/health")
def health():
    return {"status": "ok"}
