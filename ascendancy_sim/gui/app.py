"""FastAPI application for the battle simulator."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api_routes import router

# Initialize FastAPI app
app = FastAPI(
    title="Ascendancy Battle Simulator",
    description="Monte Carlo space battle odds for Star Trek: Ascendancy",
    version="0.1.0",
)

# Add CORS middleware for development
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(router, prefix="/api")

@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "service": "ascendancy-sim"}
