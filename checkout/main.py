import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from checkout.config import Settings
from checkout.database import Base, make_engine, make_session_factory
from checkout.errors import CheckoutError, DatastoreError
from checkout.logging_conf import configure_logging
from checkout.routes import router
from checkout.stripe_service import StripeGateway

logger = logging.getLogger(__name__)


async def checkout_error_handler(request: Request, exc: CheckoutError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def datastore_error_handler(request: Request, exc: SQLAlchemyError):
    # Failures outside commit(), e.g. a lookup query.
    logger.error("Datastore error on %s %s: %s", request.method, request.url.path, exc)
    error = DatastoreError()
    return JSONResponse(status_code=error.status_code, content={"detail": error.message})


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[StripeGateway] = None,
    session_factory=None,
) -> FastAPI:
    """Build the application with its clients constructed once for the process.

    Serve with ``uvicorn checkout.main:create_app --factory``.
    """
    settings = settings or Settings.from_env()
    configure_logging(settings.log_level)

    if session_factory is None:
        engine = make_engine(settings.database_url)
        Base.metadata.create_all(bind=engine)
        session_factory = make_session_factory(engine)

    app = FastAPI(title="Checkout Service")
    app.state.settings = settings
    app.state.gateway = gateway or StripeGateway(settings)
    app.state.session_factory = session_factory

    app.add_exception_handler(CheckoutError, checkout_error_handler)
    app.add_exception_handler(SQLAlchemyError, datastore_error_handler)
    app.include_router(router)

    logger.info("Checkout service configured (base url %s)", settings.public_base_url)
    return app
