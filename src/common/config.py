"""
Centralized configuration for the bus booking location pipeline.
All tunable constants and settings are defined here.
"""

import os

# Geocoding providers
GEONAMES_SEARCH_URL: str = "https://secure.geonames.org/searchJSON"
GEONAMES_USERNAME: str = os.environ.get("GEONAMES_USERNAME", "efemjoba")
GEONAMES_COUNTRY: str = "NG"
GEONAMES_MAX_ROWS: int = 10

NOMINATIM_SEARCH_URL: str = "https://nominatim.openstreetmap.org/search"
NOMINATIM_REVERSE_URL: str = "https://nominatim.openstreetmap.org/reverse"
NOMINATIM_COUNTRY_CODES: str = "ng"
# Nominatim usage policy requires an identifying User-Agent
NOMINATIM_USER_AGENT: str = "movaa-bus-booking/0.1"

# Address components tried in order when a response lacks a city
CITY_FALLBACK_FIELDS: tuple[str, ...] = ("city", "town", "village", "state_district", "state")

# HTTP timeout for provider calls (seconds)
GEOCODING_TIMEOUT_S: float = 5.0

# Queries shorter than this never hit the network
MIN_QUERY_LENGTH: int = 2

# Debounce quiet period for keystroke-driven searches
SEARCH_DEBOUNCE_MS: int = 300

# One-shot geolocation bound
GEOLOCATION_TIMEOUT_S: float = 10.0

# Fuzzy matching - rapidfuzz scores are 0-100, higher is closer
FUZZY_SCORE_THRESHOLD: float = 60.0
FUZZY_DEFAULT_LIMIT: int = 10

# Distance ranking
EARTH_RADIUS_KM: float = 6371.0
DISTANCE_PRECISION: int = 2

# Booking form
MIN_TEXT_LENGTH: int = 2
MAX_TICKETS: int = 10
PICKUP_TIME_SLOTS: tuple[str, ...] = ("6:00am", "9:00am", "12:00pm", "3:00pm", "6:00pm")

# Storage keys
USER_STORAGE_KEY: str = "user"
LOGGED_IN_USER_KEY: str = "loggedInUser"
BOOKING_DATA_KEY: str = "bookingData"
LAST_LOCATION_KEY: str = "lastLocation"
LAST_PARK_KEY: str = "lastPark"
LOCATION_PERMISSION_KEY: str = "locationPermission"

# Remembered geolocation permission outcomes
PERMISSION_GRANTED: str = "granted"
PERMISSION_DENIED: str = "denied"

# File-backed store location
STORE_PATH: str = os.environ.get("BUS_BOOKING_STORE", "data/bus_booking/store.json")

# Fixed device position for the console app, as "lat,lon"; unset disables auto-detection
DEVICE_POSITION: str | None = os.environ.get("BUS_BOOKING_POSITION")

# Console log level
LOG_LEVEL: str = os.environ.get("BUS_BOOKING_LOG_LEVEL", "INFO")

# Ticketing
TICKET_CODE_LENGTH: int = 6
TICKET_CODE_ALPHABET: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
DEFAULT_TICKET_PRICE: int = 40000
CURRENCY_SYMBOL: str = "₦"

# City-pair fares keyed by "from-destination" in lowercase
FARE_TABLE: dict[str, int] = {
    "ajah-aba": 40000,
    "ikeja-aba": 42000,
    "yaba-aba": 41000,
    "lagos-abuja": 35000,
    "lagos-ibadan": 8000,
    "abuja-kaduna": 9500,
}

# Metrics - OTLP export is enabled only when a collector endpoint is configured
OTEL_ENDPOINT: str | None = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT")

# Destination cities offered by the "Travelling to" field
DESTINATION_CITIES: list[str] = [
    "Aba",
    "Abeokuta",
    "Abuja",
    "Akure",
    "Asaba",
    "Benin City",
    "Calabar",
    "Enugu",
    "Ibadan",
    "Ilorin",
    "Jos",
    "Kaduna",
    "Kano",
    "Lagos",
    "Lokoja",
    "Onitsha",
    "Owerri",
    "Port Harcourt",
    "Uyo",
    "Warri",
]

# Take-off parks - (name, city, address, latitude, longitude)
PARK_RECORDS: list[tuple[str, str, str, float, float]] = [
    ("Ajah Motor Park", "Lagos", "No 1. Tinubu Avenue, Ajah Bustop", 6.4682, 3.5852),
    ("Ikeja Bus Terminal", "Lagos", "Obafemi Awolowo Way, Ikeja", 6.6018, 3.3515),
    ("Yaba Bus Terminal", "Lagos", "Murtala Muhammed Way, Yaba", 6.5095, 3.3715),
    ("Berger Motor Park", "Lagos", "Lagos-Ibadan Expressway, Berger", 6.5833, 3.3667),
    ("Mile 2 Motor Park", "Lagos", "Oshodi-Apapa Expressway, Mile 2", 6.4833, 3.3167),
    ("Kano Central Motor Park", "Kano", "Katsina Road, Kano", 12.0022, 8.5919),
    ("Abuja Motor Park", "Abuja", "Nyanya, Abuja", 9.0765, 7.4165),
    ("Port Harcourt Motor Park", "Port Harcourt", "Mile 3 Diobu, Port Harcourt", 4.8156, 7.0498),
    ("Ibadan Central Motor Park", "Ibadan", "Challenge, Ibadan", 7.3775, 3.947),
    ("Kaduna Motor Park", "Kaduna", "Kawo, Kaduna", 10.5105, 7.4165),
]
