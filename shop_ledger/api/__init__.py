"""
Shop Ledger API Application Factory
"""

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..config import get_config
from ..errors import AuthError, ForbiddenError, InternalError, ShopLedgerError
from ..logging_config import get_logger
from .session import router as session_router
from .users import router as users_router
from .admin import router as admin_router
from .clients import router as clients_router
from .products import router as products_router
from .transactions import router as transactions_router
from .loans import router as loans_router
from .analytics import router as analytics_router
from .notifications import router as notifications_router


logger = get_logger("shop_ledger.api")


async def handle_shop_ledger_error(request: Request, exc: ShopLedgerError) -> JSONResponse:
    """Render domain errors as {"detail": message} with their status code"""
    headers = None
    if isinstance(exc, AuthError) and not isinstance(exc, ForbiddenError):
        headers = {"WWW-Authenticate": "Bearer"}
    if isinstance(exc, InternalError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}",
        exc_info=(type(exc), exc, exc.__traceback__)
    )
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    config = get_config()
    app = FastAPI(
        title="Shop Ledger API",
        description="Point-of-sale ledger with credit sales, stock and analytics",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ShopLedgerError, handle_shop_ledger_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    # Include routers
    app.include_router(session_router, tags=["Session"])
    app.include_router(users_router, prefix="/users", tags=["Users"])
    app.include_router(admin_router, prefix="/admin", tags=["Admin"])
    app.include_router(clients_router, prefix="/clients", tags=["Clients"])
    app.include_router(products_router, prefix="/products", tags=["Products"])
    app.include_router(transactions_router, prefix="/transactions", tags=["Transactions"])
    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(analytics_router, prefix="/analytics", tags=["Analytics"])
    app.include_router(notifications_router, prefix="/notifications", tags=["Notifications"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "shop_ledger_api",
            "version": __version__
        }

    # Root endpoint
    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Shop Ledger API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "login": "/login",
                "dashboard": "/dashboard",
                "users": "/users",
                "clients": "/clients",
                "products": "/products",
                "transactions": "/transactions",
                "loans": "/loans/pay",
                "analytics": "/analytics",
                "notifications": "/notifications",
            }
        }

    return app


def run_server(host: str = "0.0.0.0", port: int = 3000, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "shop_ledger.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )


# Module-level app instance for uvicorn
app = create_app()
