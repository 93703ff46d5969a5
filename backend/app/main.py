from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.logging import configure_logging
import app.models  # noqa: F401  # force model registration

from app.api.v1.auth import router as auth_router
from app.api.v1.users import router as users_router
from app.api.v1.products import router as products_router
from app.api.v1.commission_rules import router as commission_rules_router
from app.api.v1.commissions import router as commissions_router
from app.api.v1.sales import router as sales_router
from app.api.v1.clients import router as clients_router
from app.api.v1.opportunities import router as opportunities_router
from app.api.v1.visits import router as visits_router
from app.api.v1.services import router as services_router
from app.api.v1.goals import router as goals_router
from app.api.v1.notifications import router as notifications_router
from app.api.v1.demonstrations import router as demonstrations_router
from app.api.v1.reports import router as reports_router
from app.api.v1.company_costs import router as company_costs_router


def create_application() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="AgroSales API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        return {"status": "ok", "service": "agrosales", "currency": settings.CURRENCY}

    # Routers
    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(users_router, prefix="/api/v1")
    app.include_router(products_router, prefix="/api/v1")
    app.include_router(commission_rules_router, prefix="/api/v1")
    app.include_router(commissions_router, prefix="/api/v1")
    app.include_router(sales_router, prefix="/api/v1")
    app.include_router(clients_router, prefix="/api/v1")
    app.include_router(opportunities_router, prefix="/api/v1")
    app.include_router(visits_router, prefix="/api/v1")
    app.include_router(services_router, prefix="/api/v1")
    app.include_router(goals_router, prefix="/api/v1")
    app.include_router(notifications_router, prefix="/api/v1")
    app.include_router(demonstrations_router, prefix="/api/v1")
    app.include_router(reports_router, prefix="/api/v1")
    app.include_router(company_costs_router, prefix="/api/v1")

    return app


app = create_application()
