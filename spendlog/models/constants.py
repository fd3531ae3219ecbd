"""Domain constants shared by models, validation and the demo seed."""

from typing import Dict, List, Tuple

ALL_CURRENCIES: List[str] = [
    "EUR", "USD", "GBP", "THB", "VND", "KHR", "LAK",
    "MYR", "SGD", "IDR", "PHP", "JPY", "KRW", "CNY",
]

COUNTRIES_CURRENCIES: Dict[str, str] = {
    "Thailandia": "THB",
    "Vietnam": "VND",
    "Cambogia": "KHR",
    "Laos": "LAK",
    "Malesia": "MYR",
    "Singapore": "SGD",
    "Indonesia": "IDR",
    "Filippine": "PHP",
    "Giappone": "JPY",
    "Corea del Sud": "KRW",
    "Cina": "CNY",
    "Stati Uniti": "USD",
    "Area Euro": "EUR",
    "Regno Unito": "GBP",
}

# First country listed for a currency wins
CURRENCY_TO_COUNTRY: Dict[str, str] = {}
for _country, _currency in COUNTRIES_CURRENCIES.items():
    CURRENCY_TO_COUNTRY.setdefault(_currency, _country)

TRIP_CARD_COLORS: List[str] = [
    "#3B82F6",
    "#705574",
    "#10B981",
    "#F59E0B",
    "#8B5CF6",
    "#EC4899",
    "#EF4444",
    "#06B6D4",
]

# (id, name, icon, color); these are protected and re-injected on load
DEFAULT_CATEGORY_ROWS: Tuple[Tuple[str, str, str, str], ...] = (
    ("cat-1", "Cibo", "🍔", "#FF9800"),
    ("cat-2", "Alloggio", "🏠", "#795548"),
    ("cat-3", "Trasporti", "🚆", "#2196F3"),
    ("cat-4", "Attività", "🏞️", "#4CAF50"),
    ("cat-5", "Shopping", "🛍️", "#E91E63"),
    ("cat-6", "Visti", "🛂", "#607D8B"),
    ("cat-7", "Assicurazione", "🛡️", "#00BCD4"),
    ("cat-8", "Varie", "📦", "#9E9E9E"),
)
DEFAULT_CATEGORY_IDS = frozenset(row[0] for row in DEFAULT_CATEGORY_ROWS)
FALLBACK_CATEGORY_ID = "cat-8"

UNKNOWN_COUNTRY = "Sconosciuto"
