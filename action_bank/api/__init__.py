"""
Action Bank API Application Factory
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..action_bank import ActionBank
from ..exceptions import ActionBankError
from .operations import router as operations_router
from .users import router as users_router
from .bank import router as bank_router


def create_app(action_bank: Optional[ActionBank] = None) -> FastAPI:
    """Create and configure the FastAPI application"""
    bank = action_bank or ActionBank()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await bank.initialize()
        yield
        await bank.close()

    app = FastAPI(
        title="Action Bank API",
        description="Exchanges that turn real-world activity into virtual currency",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )
    app.state.action_bank = bank

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ActionBankError)
    async def action_bank_error_handler(request: Request, exc: ActionBankError):
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict())

    # Include routers
    app.include_router(users_router, prefix="/api/user", tags=["Users"])
    app.include_router(operations_router, prefix="/api/operations", tags=["Operations"])
    app.include_router(bank_router, prefix="/api/bank", tags=["Bank"])

    # Health check endpoint
    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "healthy",
            "service": "action_bank_api",
            "version": __version__
        }

    # Root endpoint
    @app.get("/")
    async def get_api_info():
        """Get API information"""
        return {
            "name": "Action Bank API",
            "version": __version__,
            "message": "Welcome to Action Bank",
            "endpoints": {
                "docs": "/docs",
                "health": "/health",
                "login": "/api/user/login",
                "users": "/api/user",
                "operations": "/api/operations",
                "bank": "/api/bank",
            }
        }

    return app
