"""
Configuration et utilitaires partagés
"""

import os
from datetime import datetime, timezone, timedelta
from motor.motor_asyncio import AsyncIOMotorClient
from dotenv import load_dotenv
from pathlib import Path

# Charger .env
ROOT_DIR = Path(__file__).parent
load_dotenv(ROOT_DIR / '.env')

# MongoDB
MONGO_URL = os.environ.get('MONGO_URL', 'mongodb://localhost:27017')
DB_NAME = os.environ.get('DB_NAME', 'cadence_crm')

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]

# Frontend URL (liens "open deal" renvoyes par create-opportunity)
APP_URL = os.environ.get('APP_URL', 'http://localhost:3000')


# ==================== REVENUE RADAR ====================

# Google Places / Geocoding / Street View (server-side only)
GOOGLE_PLACES_API_KEY = os.environ.get('GOOGLE_PLACES_API_KEY', '')

# Cache + quota
RADAR_CACHE_TTL_HOURS = float(os.environ.get('RADAR_CACHE_TTL_HOURS', '6'))
RADAR_DAILY_SEARCH_LIMIT = int(os.environ.get('RADAR_DAILY_SEARCH_LIMIT', '25'))

# Upstream calls: hard timeout per call, then the signal is treated as missing
RADAR_HTTP_TIMEOUT = float(os.environ.get('RADAR_HTTP_TIMEOUT', '10'))

# Backpressure on batch lookups
RADAR_GEOCODE_MAX_CALLS = int(os.environ.get('RADAR_GEOCODE_MAX_CALLS', '60'))
RADAR_TRACT_MAX_CALLS = int(os.environ.get('RADAR_TRACT_MAX_CALLS', '30'))
RADAR_UPSTREAM_CONCURRENCY = int(os.environ.get('RADAR_UPSTREAM_CONCURRENCY', '5'))

# Fallback search center (Frederick, MD)
RADAR_DEFAULT_LAT = float(os.environ.get('RADAR_DEFAULT_LAT', '39.4143'))
RADAR_DEFAULT_LNG = float(os.environ.get('RADAR_DEFAULT_LNG', '-77.4105'))
RADAR_DEFAULT_RADIUS = float(os.environ.get('RADAR_DEFAULT_RADIUS', '10'))

# Identifies us to api.weather.gov / spc.noaa.gov
RADAR_USER_AGENT = os.environ.get('RADAR_USER_AGENT', '(Cadence CRM, support@cadence.app)')

# Free plan: nombre max de deals actifs
FREE_PLAN_DEAL_LIMIT = int(os.environ.get('FREE_PLAN_DEAL_LIMIT', '10'))


# ==================== HELPERS ====================

def now_iso() -> str:
    """Retourne la date/heure actuelle en ISO"""
    return datetime.now(timezone.utc).isoformat()

def timestamp() -> int:
    """Retourne le timestamp actuel"""
    return int(datetime.now(timezone.utc).timestamp())

def today_utc() -> str:
    """Jour UTC courant (YYYY-MM-DD), cle des compteurs journaliers"""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")

def next_utc_midnight_iso() -> str:
    """Minuit UTC du lendemain (reset des quotas)"""
    now = datetime.now(timezone.utc)
    tomorrow = (now + timedelta(days=1)).replace(hour=0, minute=0, second=0, microsecond=0)
    return tomorrow.isoformat()
