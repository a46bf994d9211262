"""FastAPI application setup for barback."""

from fastapi import FastAPI

from .api import demo_modes, router as api_router

app = FastAPI(title="barback")


@app.get("/health")
def health():
    """Liveness probe that also reports which integrations run in demo mode."""
    return {"status": "ok", "demoMode": demo_modes()}


# API routes
app.include_router(api_router, prefix="/api")
