"""
Konfiguration och konstanter för ruttredigeraren
"""

# Standardvärden
DEFAULT_DISTANCE = 5.0
DEFAULT_VARIETY = 5
DEFAULT_CENTER = [59.3293, 18.0686]  # Stockholm

# API URLs
ORS_BASE_URL = "https://api.openrouteservice.org"

# Routing-inställningar
REQUEST_TIMEOUT = (30, 30)  # (connect, read) i sekunder
MAX_RESPONSE_POINTS = 500
MIN_SNAP_POINTS = 2
MIN_ROUND_TRIP_POINTS = 3
DEFAULT_ROUND_TRIP_POINTS = 5

# Användarinställningar
MIN_PREFERRED_DISTANCE = 0.5
MAX_PREFERRED_DISTANCE = 50.0
VARIETY_OPTIONS = (3, 5, 10)

# Lagring
DATABASE_PATH = "routes.db"

# Bakgrundsarbete
WORKER_THREADS = 2
POLL_INTERVAL = 1.0  # sekunder mellan kontroller medan en förfrågan pågår

# Loggning
LOG_LEVEL = "INFO"
