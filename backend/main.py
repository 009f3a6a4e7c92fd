import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import auth, parcels, system, visitors
from .config import Base, engine, settings
from .core.errors import register_exception_handlers
from .core.logging import configure_logging
from .core.request_context import RequestContextMiddleware
from .core.security import log_security_warnings

# Import the models module so every table registers with Base metadata.
from .models import models as _all_models  # noqa: F401

configure_logging(settings.log_level.upper(), json=settings.log_json)  # type: ignore[arg-type]

logger = logging.getLogger(__name__)

app = FastAPI(title="Visitor & Parcel Management System")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)


@app.on_event("startup")
def startup() -> None:
    # Tables are created in place; there is no migration tool in this service.
    Base.metadata.create_all(bind=engine)
    log_security_warnings(settings.jwt_secret, settings.database_url)
    logger.info(
        "VPMS API started (status transitions %s).",
        "enforced" if settings.enforce_status_transitions else "not enforced",
    )


app.include_router(system.router, tags=["system"])
app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(visitors.router, prefix="/visitors", tags=["visitors"])
app.include_router(parcels.router, prefix="/parcels", tags=["parcels"])
