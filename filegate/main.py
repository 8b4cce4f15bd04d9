"""
FastAPI application for filegate.
Serves health, metrics and the admin-key protected internal endpoints.
"""
from fastapi import FastAPI

from filegate.api.routes import health, internal
from filegate.utils.metrics import router as metrics_router

app = FastAPI(
    title="filegate API",
    description="Health, metrics and internal hooks for the content vault",
    version="1.0.0",
)

# Routers
app.include_router(health.router, tags=["health"])
app.include_router(internal.router, tags=["internal"])
app.include_router(metrics_router)
