"""
Keyword Lexicon and Gazetteer

Static word lists used by the heuristic classifier, severity scorer and
location extractor. English and Bahasa Malaysia terms live side by side;
posts from Malaysian subreddits freely mix both.
"""

from typing import Dict, List, Tuple

# Severity tiers (keyword presence boosts: high +0.4, medium +0.2, low +0.1)
SEVERITY_KEYWORDS: Dict[str, List[str]] = {
    "high": [
        "earthquake", "gempa",
        "tsunami",
        "landslide", "tanah runtuh",
        "building collapse", "runtuh",
        "explosion", "letupan",
        "fire", "kebakaran",
        "emergency", "kecemasan",
        "urgent", "mendesak",
        "dangerous", "berbahaya",
        "evacuate", "evakuasi",
    ],
    "medium": [
        "flood", "banjir",
        "storm", "ribut",
        "heavy rain", "hujan lebat",
        "thunderstorm", "ribut petir",
        "strong wind", "angin kencang",
        "warning", "amaran",
        "alert", "siaga",
        "caution", "berhati-hati",
        "road closed", "jalan tutup",
        "traffic jam",
    ],
    "low": [
        "rain", "hujan",
        "cloudy", "mendung",
        "windy", "berangin",
        "hot", "panas",
        "humidity", "lembap",
        "weather", "cuaca",
        "temperature", "suhu",
    ],
}

SEVERITY_BOOSTS: Dict[str, float] = {"high": 0.4, "medium": 0.2, "low": 0.1}

# Used by the degraded classification path
DISASTER_KEYWORDS: List[str] = [
    "earthquake", "flood", "storm", "fire", "emergency", "disaster",
    "gempa", "banjir", "ribut", "kebakaran", "kecemasan", "bencana",
]

# Checked against unparseable LLM replies
CLEAR_DISASTER_KEYWORDS: List[str] = [
    "flood", "earthquake", "fire", "storm", "emergency", "disaster",
    "evacuation", "rescue",
]

# Strict terms gate the auto-verified flag on queue-processed events
STRICT_DISASTER_KEYWORDS: List[str] = [
    "earthquake", "tsunami", "landslide", "flood", "flash flood", "wildfire",
    "evacuation", "evacuate", "rescue", "collapsed", "explosion",
    "gempa", "tsunami", "tanah runtuh", "banjir", "banjir kilat",
    "kebakaran", "pemindahan", "menyelamat", "letupan",
]

STRICT_DISASTER_PHRASES: List[str] = [
    "state of emergency", "natural disaster", "emergency evacuation",
    "search and rescue", "death toll", "people trapped", "water rising",
    "darurat", "bencana alam", "mangsa banjir",
]

# Words that indicate everyday chatter rather than an incident
NON_DISASTER_CONTEXTS: List[str] = [
    "traffic jam", "stuck in traffic", "road closure", "construction",
    "shopping", "restaurant", "movie", "concert", "sports", "work",
    "office", "meeting", "conference", "hangout", "finding spots",
    "activities", "normal day",
    "food", "croissant", "bakery", "breakfast", "lunch", "dinner",
    "eating", "drinking", "coffee", "tea", "snack", "best", "delicious",
    "tasty", "flaky", "dense", "chewy", "butter", "bread", "pastry",
    "cafe", "café",
]

# LLM replies that explicitly decline the disaster label
NOT_DISASTER_REPLIES: List[str] = [
    "not a disaster", "not describe a disaster", "not an emergency",
    "normal traffic", "routine activities",
]

POSITIVE_WORDS: List[str] = ["safe", "okay", "fine", "good", "help", "rescue", "saved"]
NEGATIVE_WORDS: List[str] = [
    "danger", "dangerous", "emergency", "urgent", "help", "stuck", "trapped", "injured",
]

MALAY_MARKERS: List[str] = [
    "banjir", "ribut", "gempa", "kebakaran", "kecemasan", "bencana",
    "tanah runtuh", "malaysia",
]

# Coarse disaster type lookup (first match wins)
DISASTER_TYPES: List[Tuple[str, List[str]]] = [
    ("earthquake", ["earthquake", "gempa", "tremor"]),
    ("tsunami", ["tsunami"]),
    ("landslide", ["landslide", "tanah runtuh", "mudslide"]),
    ("flood", ["flood", "banjir", "flash flood", "water rising"]),
    ("fire", ["fire", "kebakaran", "wildfire", "explosion", "letupan"]),
    ("storm", ["storm", "ribut", "thunderstorm", "ribut petir", "strong wind", "angin kencang"]),
    ("haze", ["haze", "jerebu"]),
]

ENTITY_TYPES: Dict[str, List[str]] = {
    "DISASTER": ["earthquake", "flood", "storm", "fire", "landslide", "tsunami",
                 "gempa", "banjir", "ribut", "kebakaran", "tanah runtuh"],
    "EMERGENCY": ["emergency", "evacuate", "rescue", "kecemasan", "evakuasi"],
    "ORGANIZATION": ["bomba", "apm", "nadma", "metmalaysia", "jkm", "polis"],
}

# Gazetteer: region (state grouping key) -> place terms
REGIONS: Dict[str, Dict[str, List[str]]] = {
    "kuala lumpur": {
        "cities": ["kuala lumpur", "kl"],
        "areas": ["bangsar", "bangsar south", "klcc", "bukit bintang", "kepong",
                  "sentul", "brickfields", "mont kiara", "ttdi", "cheras", "setapak",
                  "wangsa maju", "damansara"],
    },
    "selangor": {
        "cities": ["selangor", "shah alam", "petaling jaya", "pj", "klang", "subang jaya", "ampang",
                   "kajang", "rawang", "sepang"],
        "areas": ["subang", "sunway", "bandar sunway", "port klang", "seri kembangan", "bangi", "puchong"],
    },
    "penang": {
        "cities": ["penang", "pulau pinang", "georgetown", "george town", "butterworth"],
        "areas": ["bayan lepas", "bukit mertajam", "balik pulau", "batu ferringhi"],
    },
    "johor": {
        "cities": ["johor", "johor bahru", "jb", "muar", "batu pahat", "kluang", "segamat"],
        "areas": ["skudai", "kulai", "pasir gudang", "iskandar puteri"],
    },
    "sabah": {
        "cities": ["sabah", "kota kinabalu", "kk", "sandakan", "tawau", "lahad datu"],
        "areas": ["ranau", "kundasang", "penampang"],
    },
    "sarawak": {
        "cities": ["sarawak", "kuching", "sibu", "miri", "bintulu"],
        "areas": ["samarahan", "kapit"],
    },
    "melaka": {
        "cities": ["melaka", "malacca", "alor gajah", "jasin"],
        "areas": ["ayer keroh"],
    },
    "kedah": {
        "cities": ["kedah", "alor setar", "sungai petani", "kulim", "langkawi"],
        "areas": [],
    },
    "perak": {
        "cities": ["perak", "ipoh", "taiping", "teluk intan", "lumut"],
        "areas": ["cameron highlands"],
    },
    "kelantan": {
        "cities": ["kelantan", "kota bharu", "pasir mas", "tumpat", "gua musang"],
        "areas": [],
    },
    "terengganu": {
        "cities": ["terengganu", "kuala terengganu", "kemaman", "dungun"],
        "areas": [],
    },
    "pahang": {
        "cities": ["pahang", "kuantan", "temerloh", "bentong", "raub"],
        "areas": ["genting highlands", "fraser's hill"],
    },
    "negeri sembilan": {
        "cities": ["negeri sembilan", "seremban", "port dickson"],
        "areas": [],
    },
    "perlis": {
        "cities": ["perlis", "kangar", "arau"],
        "areas": [],
    },
    "putrajaya": {
        "cities": ["putrajaya", "cyberjaya"],
        "areas": [],
    },
    "labuan": {
        "cities": ["labuan"],
        "areas": [],
    },
}

# Short forms canonicalised to the full place name
PLACE_ALIASES: Dict[str, str] = {
    "kl": "kuala lumpur",
    "pj": "petaling jaya",
    "jb": "johor bahru",
    "kk": "kota kinabalu",
    "malacca": "melaka",
    "george town": "georgetown",
    "pulau pinang": "penang",
    "subang": "subang jaya",
}

# City centroids (lat, lon) for reverse resolution of coordinates
PLACE_CENTROIDS: Dict[str, Tuple[float, float]] = {
    "kuala lumpur": (3.1390, 101.6869),
    "petaling jaya": (3.1073, 101.6067),
    "shah alam": (3.0733, 101.5185),
    "klang": (3.0449, 101.4456),
    "putrajaya": (2.9264, 101.6964),
    "georgetown": (5.4141, 100.3288),
    "johor bahru": (1.4927, 103.7414),
    "kota kinabalu": (5.9804, 116.0735),
    "kuching": (1.5533, 110.3592),
    "ipoh": (4.5975, 101.0901),
    "alor setar": (6.1248, 100.3678),
    "kota bharu": (6.1254, 102.2381),
    "kuala terengganu": (5.3302, 103.1408),
    "kuantan": (3.8077, 103.3260),
    "seremban": (2.7297, 101.9381),
    "melaka": (2.1896, 102.2501),
    "kangar": (6.4414, 100.1986),
    "labuan": (5.2831, 115.2308),
}
