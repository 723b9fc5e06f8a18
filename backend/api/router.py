"""
Central API Router
Combines all API endpoints into a single router for main.py
"""
from fastapi import APIRouter

from api.endpoints import sketchiness, system

# Create the main API router
api_router = APIRouter()

api_router.include_router(system.router, prefix="/api", tags=["system"])
api_router.include_router(sketchiness.router, prefix="/api/sketchiness", tags=["sketchiness"])


# Add a root endpoint for API discovery
@api_router.get("/api")
async def api_root():
    """API root endpoint for discovery"""
    return {
        "message": "Sketchiness API v1.0",
        "documentation": "/docs",
        "endpoints": {
            "tiles": "/api/sketchiness/{z}/{x}/{y} - Street segment vector tiles (layer 'streets')",
            "analysis": "/api/sketchiness/analysis - Run the crossing-distance analysis",
            "status": "/api/sketchiness/status - Published snapshot summary",
            "unmarked_crossings": "/api/sketchiness/unmarked-crossings - Unmarked crossings as GeoJSON",
            "health": "/api/health - System health check",
            "logs": "/logs/recent - Recent log records",
        },
    }
