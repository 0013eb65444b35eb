import logging
from typing import Dict

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .db.session import ping_database
from .logging_config import configure_logging
from .study_plan_routes import router as study_plan_router


settings_snapshot = get_settings()
configure_logging(settings_snapshot)
logger = logging.getLogger(__name__)
app = FastAPI(title="Study Planner", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("Study planner starting; database configured: %s", bool(settings_snapshot.database_url))
logger.info("Inventory workers: %d", settings_snapshot.inventory_workers)


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    if not settings.database_url:
        return {"status": "degraded", "database": "missing"}
    if not ping_database():
        return {"status": "degraded", "database": "unreachable"}
    return {"status": "ok", "database": "reachable"}


app.include_router(study_plan_router)


def run() -> None:
    settings = get_settings()
    logger.info("Serving study planner on %s:%s", settings.host, settings.port)

    import uvicorn

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
