import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.core.config import get_settings
from src.core.logging_config import setup_logging
from src.routers import ballot as ballot_router
from src.routers import civic as civic_router

# Configure logging VERY early
setup_logging(get_settings().log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title="Ballot Builder - Value Alignment API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include Routers ---
app.include_router(civic_router.router, prefix="/api/v1", tags=["civic"])
app.include_router(ballot_router.router, prefix="/api/v1", tags=["ballot"])

@app.get("/health", tags=["Health Check"])
async def health_check():
    """Liveness check; does not load assessment content."""
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
