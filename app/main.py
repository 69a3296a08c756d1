"""school-upload-api - assignment, resource and homework uploads powered by Robyn."""

from robyn import Robyn

from app.api.assignments import router as assignments_router
from app.api.health import router as health_router
from app.api.homeworks import router as homeworks_router
from app.api.resources import router as resources_router
from app.core.lifespan import create_lifespan
from app.core.logger import LogIcon, logger
from app.core.settings import settings as st
from app.events.upload_storage import UploadStorageEvent
from app.middlewares.base import MiddlewareHandler
from app.middlewares.files import FileUploadOpenAPIMiddleware

app = Robyn(__file__)

# Lifespan events
lifespan = create_lifespan(app)
lifespan.register(UploadStorageEvent)

app.startup_handler(lifespan.startup)
app.shutdown_handler(lifespan.shutdown)

# Routers
app.include_router(health_router)
app.include_router(assignments_router)
app.include_router(resources_router)
app.include_router(homeworks_router)

# Middlewares
middlewares = MiddlewareHandler(app)
middlewares.register(FileUploadOpenAPIMiddleware())


def main() -> None:
    logger.info(f"Starting {st.API_NAME}", icon=LogIcon.START, host=st.API_HOST, port=st.API_PORT)
    app.start(host=st.API_HOST, port=st.API_PORT)


if __name__ == "__main__":
    main()
