# rental_booking/main.py

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rental_booking.config import ALLOWED_ORIGINS
from rental_booking.logging_config import setup_logging
from rental_booking.middleware import RequestIDMiddleware
from rental_booking.routes.availability import router as availability_router
from rental_booking.routes.health import router as health_router
from rental_booking.routes.items import router as items_router
from rental_booking.routes.metrics import router as metrics_router
from rental_booking.routes.reservations import router as reservations_router
from rental_booking.routes.webhook import router as webhook_router

# Initialize structured logging
setup_logging()
logger = structlog.get_logger(__name__)

app = FastAPI(
    title="Rental Booking API",
    description="Availability rules, reservations and double-booking prevention for rental items",
    version="1.0.0",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS if "*" not in ALLOWED_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIDMiddleware)

# Register routers
app.include_router(health_router, tags=["Health"])
app.include_router(metrics_router, tags=["Metrics"])
app.include_router(items_router, tags=["Items"])
app.include_router(availability_router, tags=["Availability"])
app.include_router(reservations_router, tags=["Reservations"])
app.include_router(webhook_router, tags=["Webhooks"])

logger.info("app_initialized", title=app.title)
