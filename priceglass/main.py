"""
HTTP entry point for the price function.
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response

from priceglass import __version__
from priceglass.config import config
from priceglass.logger import logger
from priceglass.sentry import initialize_sentry
from priceglass.services.ai_service import ai_service
from priceglass.services.price_function import price_function
from priceglass.services.upc_service import upc_service

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "authorization, x-client-info, apikey, content-type",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    logger.info("Starting Price Glass price function")
    initialize_sentry()

    await ai_service.initialize()
    await upc_service.initialize()

    yield

    logger.info("Shutting down Price Glass price function")
    await ai_service.close()
    await upc_service.close()


app = FastAPI(
    title="Price Glass API",
    description="AI-estimated price comparison across e-commerce stores",
    version=__version__,
    lifespan=lifespan
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Price Glass",
        "version": __version__,
        "status": "operational",
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    services = {
        "ai": ai_service.is_available,
        "upc": upc_service.session is not None,
    }

    # without an AI key every compare answers with placeholder rows
    status = "healthy" if all(services.values()) else "degraded"

    return {
        "status": status,
        "services": services,
        "environment": config.ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }


@app.options("/functions/scrape-prices")
async def scrape_prices_preflight():
    return Response(status_code=200, headers=CORS_HEADERS)


@app.post("/functions/scrape-prices")
async def scrape_prices(request: Request):
    """Price comparison, product lookup and assistant actions."""
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning(f"Invalid JSON body: {e}")
        return JSONResponse(
            {"success": False, "error": "Request body must be valid JSON"},
            status_code=400,
            headers=CORS_HEADERS,
        )

    status_code, envelope = await price_function.handle(body)
    return JSONResponse(envelope, status_code=status_code, headers=CORS_HEADERS)


if __name__ == "__main__":
    import os
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
