"""
Quick Workout Service - Main Entry Point

AI workout generation with duration selection and response repair.
"""
import os
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from quickworkout.core.config import settings
from quickworkout.core.logger import logger
from quickworkout.core.limiter import limiter, DURATION_STRATEGY_LIMIT
from quickworkout.routes import workout


# Validate configuration on startup
try:
    settings.validate()
    logger.info("Configuration validated successfully")
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    raise


# Create FastAPI app
app = FastAPI(
    title="Quick Workout Service",
    description="AI workout generation with duration selection and response repair",
    version="1.0.0"
)

# Attach rate limiter and its error handler
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


app.include_router(workout.router, tags=["Workout"])


@app.get("/")
@limiter.limit(DURATION_STRATEGY_LIMIT)
def root(request: Request):
    """Health check endpoint."""
    return {"message": "Quick Workout Service running"}


@app.get("/health")
def health():
    """
    Detailed health status.
    Returns 'degraded' if required environment variables are missing.
    """
    required_vars = ["OPENAI_API_KEY"]
    missing = [v for v in required_vars if not os.environ.get(v)]

    if missing:
        return JSONResponse(
            status_code=200,
            content={
                "status": "degraded",
                "service": "quickworkout-service",
                "version": "1.0.0",
                "missing_config": missing,
                "message": f"Missing required environment variables: {', '.join(missing)}"
            }
        )

    return {
        "status": "healthy",
        "service": "quickworkout-service",
        "version": "1.0.0"
    }


# Run with uvicorn when executed directly
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "quickworkout.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False
    )
