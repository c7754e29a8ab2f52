import uvicorn
from fastapi import FastAPI
from app.middlewares import setup_middlewares
from app.exceptions import setup_exception_handlers
from app.db import AsyncSessionLocal, init_db
from app.routers import (
    auth, accounts, payments, family, setup, caretakers, babies,
    sleep_logs, feed_logs, diaper_logs, bath_logs, pump_logs, notes, milestones, measurements,
    medicines, medicine_logs, calendar_events, contacts, timeline, activity_settings, settings, database, feedback,
)
from app.services.seed import seed_units
from app.logging_config import logger

app = FastAPI(title="Baby Control API", version="1.0.0")

setup_middlewares(app)
setup_exception_handlers(app)

@app.on_event("startup")
async def startup_event():
    await init_db()
    async with AsyncSessionLocal() as session:
        await seed_units(session)
    logger.info("Application starting", extra={"version": "1.0.0"})

API_PREFIX = "/api"

for module in (
    auth, accounts, payments, family, setup, caretakers, babies,
    sleep_logs, feed_logs, diaper_logs, bath_logs, pump_logs, notes, milestones, measurements,
    medicines, medicine_logs, calendar_events, contacts, timeline, activity_settings, settings, database, feedback,
):
    app.include_router(module.router, prefix=API_PREFIX)


@app.get("/")
def root():
    return {"ok": True, "docs": "/docs"}



if __name__ == "__main__":
    uvicorn.run("main:app", reload=True, port=8001)
