import uvicorn
from fastapi import FastAPI
from meditrack.middlewares import setup_middlewares
from meditrack.exceptions import setup_exception_handlers
from meditrack.db import init_models
from meditrack.routers import auth, dashboard, patients, appointments, beds, prescriptions, attendance, alerts
from meditrack.logging_config import logger

VERSION = "1.0.0"


def create_app() -> FastAPI:
    app = FastAPI(title="MediTrack Console", version=VERSION)

    setup_middlewares(app)
    setup_exception_handlers(app)

    @app.on_event("startup")
    async def startup_event():
        await init_models(getattr(app.state, "engine", None))
        logger.info("Console starting", extra={"version": VERSION})

    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(patients.router)
    app.include_router(appointments.router)
    app.include_router(beds.router)
    app.include_router(prescriptions.router)
    app.include_router(attendance.router)
    app.include_router(alerts.router)

    @app.get("/")
    def root():
        return {"ok": True, "docs": "/docs"}

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", reload=True, port=8001)
