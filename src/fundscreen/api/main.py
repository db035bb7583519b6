from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..config import settings, configure_logging
from ..db import SessionLocal, init_db
from ..etl.seed import seed_data
from .routes import router

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    if settings.SEED_ON_STARTUP:
        db = SessionLocal()
        try:
            seed_data(db)
        finally:
            db.close()
    yield


app = FastAPI(title="Fundamentus Screener (B3)", lifespan=lifespan)

app.include_router(router)

@app.get("/health")
def health():
    return {"ok": True}
