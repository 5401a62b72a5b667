"""
Moderation Constants
====================

All thresholds, patterns, word lists and scores for message moderation.
"""

import re
from typing import Dict, FrozenSet, List, Pattern, Tuple


# =============================================================================
# Rate / Duplicate Windows
# =============================================================================

RATE_WINDOW = 60  # seconds
DEFAULT_MAX_MESSAGES_PER_MINUTE = 10
DEFAULT_MAX_DUPLICATE_MESSAGES = 3
DEFAULT_DUPLICATE_TIME_WINDOW = 60  # seconds
RECENT_MESSAGE_LIMIT = 5  # deleted on a rate violation


# =============================================================================
# Raid Detection
# =============================================================================

RAID_TIME_WINDOW = 60  # seconds
DEFAULT_RAID_JOIN_THRESHOLD = 10
RAID_NEW_ACCOUNT_DAYS = 7
RAID_BASE_CONFIDENCE = 0.5
RAID_MAX_CONFIDENCE = 0.95


# =============================================================================
# Escalation Defaults
# =============================================================================

DEFAULT_TOXICITY_THRESHOLD = 70  # percent
DEFAULT_MAX_WARNINGS = 5
DEFAULT_WARNING_DECAY_DAYS = 30
DEFAULT_AUTO_MUTE_AFTER = 3
DEFAULT_AUTO_KICK_AFTER = 4
DEFAULT_AUTO_BAN_AFTER = 5
DEFAULT_MUTE_DURATION = 3600  # seconds

MUTE_ROLE_NAME = "Muted"
MUTE_ROLE_COLOR = 0x818386


# =============================================================================
# Automod Scoring
# =============================================================================

AUTOMOD_SPAM_THRESHOLD = 0.6

PROFANITY_SCORE = 0.8
BOOST_SCAM_SCORE = 0.8
SUSPICIOUS_URL_SCORE = 0.7
MASS_MENTION_SCORE = 0.5
EXCESSIVE_CAPS_SCORE = 0.3
REPEATED_CHARS_SCORE = 0.4
SPAM_PHRASE_SCORE = 0.3

MENTION_LIMIT = 5
CAPS_RATIO_LIMIT = 0.7
CAPS_MIN_LENGTH = 10

MENTION_PATTERN: Pattern = re.compile(r"<@[!&]?\d+>")
REPEATED_CHAR_PATTERN: Pattern = re.compile(r"(.)\1{10,}")
UPPERCASE_PATTERN: Pattern = re.compile(r"[A-Z]")

BOOST_SCAM_PATTERNS: List[Pattern] = [
    re.compile(r"free\s*discord\s*nitro", re.IGNORECASE),
    re.compile(r"free\s*discord\s*boost", re.IGNORECASE),
    re.compile(r"discord\s*gift", re.IGNORECASE),
    re.compile(r"nitro\s*gift", re.IGNORECASE),
    re.compile(r"free\s*nitro", re.IGNORECASE),
    re.compile(r"claim\s*your\s*nitro", re.IGNORECASE),
    re.compile(r"discord\s*nitro\s*generator", re.IGNORECASE),
    re.compile(r"get\s*free\s*discord", re.IGNORECASE),
]

SUSPICIOUS_URL_PATTERNS: List[Pattern] = [
    re.compile(r"discord\.gift", re.IGNORECASE),
    re.compile(r"discord-nitro", re.IGNORECASE),
    re.compile(r"discrod", re.IGNORECASE),
    re.compile(r"discordapp-gift", re.IGNORECASE),
    re.compile(r"steam-nitro", re.IGNORECASE),
    re.compile(r"disocrd", re.IGNORECASE),
]

SPAM_PHRASE_PATTERNS: List[Pattern] = [
    re.compile(r"click\s*here\s*now", re.IGNORECASE),
    re.compile(r"limited\s*time\s*offer", re.IGNORECASE),
    re.compile(r"act\s*fast", re.IGNORECASE),
    re.compile(r"100%\s*free", re.IGNORECASE),
    re.compile(r"no\s*survey", re.IGNORECASE),
    re.compile(r"download\s*now", re.IGNORECASE),
    re.compile(r"congratulations.*winner", re.IGNORECASE),
]

ENGLISH_PROFANITY: List[str] = [
    "damn", "hell", "shit", "fuck", "bitch", "ass", "asshole", "bastard",
    "crap", "piss", "whore", "slut", "retard", "idiot", "moron", "stupid",
    "dumb", "loser", "gay", "fag", "nigga", "negro", "chink", "spic",
]

PORTUGUESE_PROFANITY: List[str] = [
    "merda", "porra", "caralho", "foda", "puta", "vadia", "vagabunda",
    "cacete", "droga", "inferno", "diabo", "burro", "idiota", "imbecil",
    "otário", "babaca", "cuzão", "fdp", "filho da puta", "vai se foder",
    "cu", "buceta", "piroca", "rola", "pau", "viado", "bicha", "sapatão",
    "preto", "nego", "crioulo",
]

PROFANITY_LANGUAGES: List[Tuple[str, List[str]]] = [
    ("English", ENGLISH_PROFANITY),
    ("Portuguese", PORTUGUESE_PROFANITY),
]


# =============================================================================
# Phishing
# =============================================================================

KNOWN_PHISHING_SCORE = 0.95
SUSPICIOUS_DOMAIN_SCORE = 0.75
SPOOFING_SIMILARITY_LIMIT = 0.8

URL_PATTERN: Pattern = re.compile(
    r"https?://(?:www\.)?[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}",
    re.IGNORECASE,
)

PHISHING_DOMAINS: FrozenSet[str] = frozenset({
    # Impersonated services
    "discord-nitro.com", "discordnitro.info", "discord-app.net", "discordapp.org",
    "steam-community.com", "steamcommunlty.com", "steampowered.org",
    "paypal-secure.com", "paypal-verification.com", "amazon-security.com",
    "apple-support.com", "microsoft-support.com", "google-security.com",
    "facebook-security.com", "twitter-security.com", "instagram-security.com",
    # Discord gift scams
    "discord-gift.com", "discordapp-gift.com",
    "steam-discord.com", "discord-steam.com", "discrod.com",
    "disc0rd.com", "discordsteam.com", "discord-app.com",
    "discord-nitro.org", "discord-nitro.net", "free-nitro.com",
    "nitro-discord.com", "steamcommunity-discord.com",
})

SUSPICIOUS_DOMAIN_PATTERNS: List[Pattern] = [
    re.compile(r"discord.*nitro", re.IGNORECASE),
    re.compile(r"free.*discord", re.IGNORECASE),
    re.compile(r"steam.*discord", re.IGNORECASE),
    re.compile(r"discord.*gift", re.IGNORECASE),
    re.compile(r"claim.*nitro", re.IGNORECASE),
]

LEGITIMATE_DOMAINS: List[str] = ["discord.com", "discord.gg", "steamcommunity.com"]


# =============================================================================
# Scam Links / Financial
# =============================================================================

SUSPICIOUS_FINANCIAL_SCORE = 0.7
FINANCIAL_TERM_MINIMUM = 2

SCAM_PATTERNS: List[Tuple[Pattern, str, float]] = [
    # Cryptocurrency
    (re.compile(r"free.*bitcoin", re.IGNORECASE), "crypto_scam", 0.9),
    (re.compile(r"double.*bitcoin", re.IGNORECASE), "crypto_scam", 0.95),
    (re.compile(r"ethereum.*giveaway", re.IGNORECASE), "crypto_scam", 0.8),
    (re.compile(r"crypto.*multiplier", re.IGNORECASE), "crypto_scam", 0.85),
    # Investment
    (re.compile(r"guaranteed.*profit", re.IGNORECASE), "investment_scam", 0.8),
    (re.compile(r"make.*money.*fast", re.IGNORECASE), "investment_scam", 0.7),
    (re.compile(r"forex.*trading.*bot", re.IGNORECASE), "investment_scam", 0.75),
    # Prize / lottery
    (re.compile(r"you.*won.*prize", re.IGNORECASE), "prize_scam", 0.85),
    (re.compile(r"congratulations.*winner", re.IGNORECASE), "prize_scam", 0.8),
    (re.compile(r"claim.*reward", re.IGNORECASE), "prize_scam", 0.7),
    # Tech support
    (re.compile(r"microsoft.*support", re.IGNORECASE), "tech_scam", 0.75),
    (re.compile(r"computer.*infected", re.IGNORECASE), "tech_scam", 0.8),
    (re.compile(r"virus.*detected", re.IGNORECASE), "tech_scam", 0.85),
    # Romance
    (re.compile(r"lonely.*looking.*love", re.IGNORECASE), "romance_scam", 0.7),
    (re.compile(r"send.*money.*family", re.IGNORECASE), "romance_scam", 0.8),
]

FINANCIAL_TERMS: List[str] = ["investment", "roi", "profit", "trading", "forex", "crypto", "bitcoin"]
URGENCY_TERMS: List[str] = ["limited time", "act now", "urgent", "expires soon"]


# =============================================================================
# Malicious Files
# =============================================================================

DANGEROUS_EXTENSION_SCORE = 0.9
DOUBLE_EXTENSION_SCORE = 0.95
SUSPICIOUS_FILENAME_SCORE = 0.8
SMALL_EXECUTABLE_SCORE = 0.7
LARGE_EXECUTABLE_SCORE = 0.6

SMALL_EXECUTABLE_BYTES = 1024
LARGE_EXECUTABLE_BYTES = 100 * 1024 * 1024

DANGEROUS_EXTENSIONS: FrozenSet[str] = frozenset({
    ".exe", ".scr", ".bat", ".cmd", ".com", ".pif", ".vbs", ".js",
    ".jar", ".ps1", ".msi", ".deb", ".rpm", ".dmg", ".pkg", ".app",
})

DOUBLE_EXTENSION_PATTERN: Pattern = re.compile(
    r"\.(txt|pdf|doc|jpg|png)\.(exe|scr|bat|cmd)$",
    re.IGNORECASE,
)

SUSPICIOUS_FILENAME_PATTERNS: List[Pattern] = [
    re.compile(rf"{word}.*exe", re.IGNORECASE)
    for word in (
        "setup", "install", "update", "patch", "crack", "keygen",
        "hack", "cheat", "virus", "trojan", "backdoor",
    )
]


# =============================================================================
# Explicit Content
# =============================================================================

EXPLICIT_FILENAME_SCORE = 0.8
EXPLICIT_TEXT_STEP = 0.3
EXPLICIT_TEXT_CAP = 0.9

EXPLICIT_TERMS: List[str] = [
    # Adult
    "porn", "xxx", "nude", "naked", "sex", "adult", "mature",
    "nsfw", "explicit", "erotic", "sexual", "intimate",
    # Violence
    "gore", "blood", "violence", "death", "kill", "murder",
    "torture", "brutal", "graphic",
]

IMAGE_EXTENSIONS: FrozenSet[str] = frozenset({
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".svg",
})


# =============================================================================
# Toxicity
# =============================================================================

HIGH_SEVERITY_SCORE = 0.9
MEDIUM_SEVERITY_SCORE = 0.7
HARASSMENT_SCORE = 0.6
PROFANITY_STEP = 0.2
PROFANITY_CAP = 0.9
PROFANITY_COUNT_LIMIT = 2

# (pattern, severity, subtype)
HATE_SPEECH_PATTERNS: List[Tuple[Pattern, str, str]] = [
    (re.compile(r"kill\s+yourself", re.IGNORECASE), "high", "self_harm"),
    (re.compile(r"kys", re.IGNORECASE), "high", "self_harm"),
    (re.compile(r"go\s+die", re.IGNORECASE), "medium", "death_wish"),
    (re.compile(r"retard|retarded", re.IGNORECASE), "medium", "ableism"),
    (re.compile(r"f[a@]gg?[o0]t", re.IGNORECASE), "high", "homophobia"),
    (re.compile(r"n[i1]gg[e3]r", re.IGNORECASE), "high", "racism"),
]

HARASSMENT_PATTERNS: List[Pattern] = [
    re.compile(r"you\s+(are|r)\s+.*(stupid|dumb|idiot|moron)", re.IGNORECASE),
    re.compile(r"shut\s+up", re.IGNORECASE),
    re.compile(r"nobody\s+asked", re.IGNORECASE),
    re.compile(r"nobody\s+cares", re.IGNORECASE),
]

TOXIC_PROFANITY: List[str] = [
    "damn", "hell", "shit", "fuck", "bitch", "ass", "bastard",
    "crap", "piss", "whore", "slut",
]


# =============================================================================
# Categories
# =============================================================================

class Category:
    """Detector categories, used as settings flags and statistics labels."""
    SPAM = "Spam Detection"
    EXPLICIT = "Explicit Content Filter"
    PHISHING = "Phishing Protection"
    SCAM = "Scam Link Detection"
    MALICIOUS_FILE = "Malicious File Detection"
    TOXICITY = "AI Toxicity Detection"
    RAID = "Raid Protection"


SEVERITY_MAP: Dict[str, str] = {
    Category.SPAM: "low",
    Category.EXPLICIT: "medium",
    Category.PHISHING: "high",
    Category.SCAM: "high",
    Category.MALICIOUS_FILE: "critical",
    Category.TOXICITY: "medium",
    Category.RAID: "critical",
}

SEVERITY_LEVELS: Tuple[str, ...] = ("low", "medium", "high", "critical")


# =============================================================================
# Statistics
# =============================================================================

STATS_CACHE_TTL = 60  # seconds
DAILY_TREND_DAYS = 30
WEEKLY_TREND_WEEKS = 12
TOP_LIST_LIMIT = 10
TREND_DEADBAND_PERCENT = 20

ACTION_MESSAGE_MODERATION = "message_moderation"
ACTION_RAID_PROTECTION = "raid_protection"
ACTION_SPAM = "spam"
ACTION_MANUAL_WARNING = "manual_warning"
