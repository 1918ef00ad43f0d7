import logging

from fastapi import FastAPI

from overtime.config import LOG_LEVEL, TICK_SECONDS
from overtime.database import SessionLocal, init_db
from overtime.routers import api
from overtime.schemas import StatusResponse
from overtime.services.controller import TrackerController
from overtime.services.storage import SqlStorage

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("overtime")

app = FastAPI(title="Overtime", description="Work time and overtime tracking")

# Include routers
app.include_router(api.router)


def log_snapshot(snapshot: StatusResponse) -> None:
    logger.debug(
        "Tick: %s worked %s, remaining %s",
        snapshot.status,
        snapshot.worked_formatted,
        snapshot.remaining_formatted,
    )


@app.on_event("startup")
async def startup_event():
    init_db()
    controller = TrackerController(SqlStorage(SessionLocal))
    controller.attach_sampler(TICK_SECONDS, log_snapshot)
    controller.load()
    app.state.controller = controller


@app.on_event("shutdown")
async def shutdown_event():
    controller = getattr(app.state, "controller", None)
    if controller is not None and controller.sampler is not None:
        controller.sampler.stop()


if __name__ == "__main__":
    import uvicorn
    from overtime.config import HOST, PORT

    uvicorn.run("main:app", host=HOST, port=PORT, reload=True)
