"""
Cadence CRM - API Backend
Revenue Radar: lead prospecting on the map

Démarre avec:
    uvicorn server:app --host 0.0.0.0 --port 8001 --reload
"""

import os
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Configuration logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("cadence")

# Créer l'app
app = FastAPI(
    title="Cadence CRM",
    description="Revenue Radar - scoring et clustering de leads geolocalises",
    version="1.0.0"
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=os.environ.get('CORS_ORIGINS', '*').split(','),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ==================== IMPORT DES ROUTES ====================

from routes import revenue_radar

# Routes avec préfixe /api
app.include_router(revenue_radar.router, prefix="/api")

# ==================== ROUTE RACINE ====================

@app.get("/")
async def root():
    return {
        "name": "Cadence CRM API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


# ==================== STARTUP ====================

@app.on_event("startup")
async def startup():
    logger.info("Cadence CRM démarré")

    from config import db

    try:
        await db.sessions.create_index("token")
        await db.sessions.create_index("expires_at")
        await db.radar_cache.create_index("cache_key", unique=True)
        await db.radar_cache.create_index("expires_at")
        await db.radar_rate_limits.create_index(
            [("org_id", 1), ("search_date", 1)], unique=True
        )
        await db.deals.create_index("org_id")
        await db.companies.create_index("org_id")
        logger.info("Index MongoDB créés")
    except Exception as e:
        logger.error(f"Index MongoDB non créés: {e}")


@app.on_event("shutdown")
async def shutdown_db_client():
    from config import client
    client.close()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
