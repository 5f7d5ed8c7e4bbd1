# Album Log Configuration Template
# Copy this file to config.py and update with your settings

# ========== LAST.FM ==========
LASTFM_API_KEY = "YOUR_API_KEY_HERE"     # From https://www.last.fm/api/account/create

# ========== DATASTORE ==========
# Hosted PostgREST backend holding the `music_library` table

DATASTORE_URL = "https://your-project.supabase.co"
DATASTORE_API_KEY = "YOUR_ANON_KEY_HERE"
DATASTORE_ACCESS_TOKEN = ""             # User access token; leave empty to use the API key

# Owner of the library (user id in the backend's auth service)
LIBRARY_USER_ID = ""

# ========== LIMITS ==========
MAX_ALBUMS_PER_USER = 500

# ========== API RATE LIMITING ==========
# Adjust these if you experience API issues

REQUEST_DELAY = 0.2             # Seconds between Last.fm requests
MAX_RETRIES = 3                 # Attempts for rate-limited Last.fm calls
RETRY_DELAY = 2.0               # Base delay for exponential backoff
REQUEST_TIMEOUT = 30            # Seconds

# ========== LOGGING SETTINGS ==========
LOG_LEVEL = "INFO"              # DEBUG, INFO, WARNING, ERROR
LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"

# ========== WEB UI ==========
WEBUI_SECRET = "change-me"
