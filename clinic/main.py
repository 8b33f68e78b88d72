# clinic/main.py
import logging
import logging.config
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clinic.core.config import settings
from clinic.core.errors import register_exception_handlers
from clinic.core.logging import build_logging_config
from clinic.db.sql import engine, init_db
from clinic.routers import appointments, auth, doctors, health, users

logging.config.dictConfig(build_logging_config(settings))
logger = logging.getLogger(__name__)


# Define lifespan event
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Creates the tables on startup when DB_AUTO_CREATE is set (migrations
    handle it otherwise) and disposes the connection pool on shutdown.
    """
    if settings.DB_AUTO_CREATE:
        await init_db()
    logger.info("Clinic API started (env=%s, prefix=%s)", settings.APP_ENV, settings.API_PREFIX)
    yield
    await engine.dispose()


app = FastAPI(
    title="Doctor Appointment Booking API",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Routing
app.include_router(health.router, prefix=settings.API_PREFIX, tags=["health"])
app.include_router(auth.router, prefix=settings.API_PREFIX, tags=["auth"])
app.include_router(users.router, prefix=settings.API_PREFIX, tags=["users"])
app.include_router(doctors.router, prefix=settings.API_PREFIX, tags=["doctors"])
app.include_router(appointments.router, prefix=settings.API_PREFIX, tags=["appointments"])


@app.get("/")
def root():
    return {"message": "Doctor appointment booking API running successfully"}
