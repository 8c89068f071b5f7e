"""
Lending Desk API Application Factory
"""

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from .loans import router as loans_router
from .payments import router as payments_router
from .partners import router as partners_router
from .reports import router as reports_router


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""
    app = FastAPI(
        title="Lending Desk API",
        description="Private lending portfolio: installments, investor splits and reconciliation",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": jsonable_errors(exc)},
        )

    app.include_router(loans_router, prefix="/loans", tags=["Loans"])
    app.include_router(payments_router, prefix="/payments", tags=["Payments"])
    app.include_router(partners_router, prefix="/partners", tags=["Partners"])
    app.include_router(reports_router, prefix="/reports", tags=["Reports"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "lending_desk_api",
            "version": __version__
        }

    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Lending Desk API",
            "version": __version__,
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "loans": "/loans",
                "payments": "/payments",
                "partners": "/partners",
                "reports": "/reports",
            }
        }

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


app = create_app()


def run_server(host: str = "127.0.0.1", port: int = 8090, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "lending_desk.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )
