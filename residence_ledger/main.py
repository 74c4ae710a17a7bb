"""
Residence Ledger: FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

import logging

from fastapi import FastAPI

from residence_ledger.config import get_settings
from residence_ledger.logging_config import configure_logging
from residence_ledger.api.health import router as health_router
from residence_ledger.api.leases import router as leases_router
from residence_ledger.api.accruals import router as accruals_router
from residence_ledger.api.payments import router as payments_router
from residence_ledger.api.tenants import router as tenants_router
from residence_ledger.api.reports import router as reports_router
from residence_ledger.api.ledger import router as ledger_router
from residence_ledger.api.reversals import router as reversals_router

settings = get_settings()
configure_logging(settings)

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Accrual accounting and payment allocation for student accommodation",
)

# Register routers
app.include_router(health_router)
app.include_router(leases_router)
app.include_router(accruals_router)
app.include_router(payments_router)
app.include_router(tenants_router)
app.include_router(reports_router)
app.include_router(ledger_router)
app.include_router(reversals_router)

logger.info(
    "%s %s started (%s)", settings.APP_NAME, settings.APP_VERSION,
    settings.ENVIRONMENT,
)
