"""
Moderation Detectors
====================

Pure, rule-based detector functions.

Every detector takes message text or an attachment and returns a list of
Violation objects. None of them keep state: calling one twice with the same
input returns the same output.

`run_detector` wraps a detector so one crashing rule costs only its own
findings, never the whole evaluation.
"""

import os
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Pattern, Tuple
from urllib.parse import urlsplit

from src.core.logger import logger
from src.utils.metrics import record_failure

from .constants import (
    BOOST_SCAM_PATTERNS,
    BOOST_SCAM_SCORE,
    CAPS_MIN_LENGTH,
    CAPS_RATIO_LIMIT,
    Category,
    DANGEROUS_EXTENSION_SCORE,
    DANGEROUS_EXTENSIONS,
    DOUBLE_EXTENSION_PATTERN,
    DOUBLE_EXTENSION_SCORE,
    EXCESSIVE_CAPS_SCORE,
    EXPLICIT_FILENAME_SCORE,
    EXPLICIT_TERMS,
    EXPLICIT_TEXT_CAP,
    EXPLICIT_TEXT_STEP,
    FINANCIAL_TERM_MINIMUM,
    FINANCIAL_TERMS,
    HARASSMENT_PATTERNS,
    HARASSMENT_SCORE,
    HATE_SPEECH_PATTERNS,
    HIGH_SEVERITY_SCORE,
    IMAGE_EXTENSIONS,
    KNOWN_PHISHING_SCORE,
    LARGE_EXECUTABLE_BYTES,
    LARGE_EXECUTABLE_SCORE,
    LEGITIMATE_DOMAINS,
    MASS_MENTION_SCORE,
    MEDIUM_SEVERITY_SCORE,
    MENTION_LIMIT,
    MENTION_PATTERN,
    PHISHING_DOMAINS,
    PROFANITY_CAP,
    PROFANITY_COUNT_LIMIT,
    PROFANITY_LANGUAGES,
    PROFANITY_SCORE,
    PROFANITY_STEP,
    REPEATED_CHAR_PATTERN,
    REPEATED_CHARS_SCORE,
    SCAM_PATTERNS,
    SMALL_EXECUTABLE_BYTES,
    SMALL_EXECUTABLE_SCORE,
    SPAM_PHRASE_PATTERNS,
    SPAM_PHRASE_SCORE,
    SPOOFING_SIMILARITY_LIMIT,
    SUSPICIOUS_DOMAIN_PATTERNS,
    SUSPICIOUS_DOMAIN_SCORE,
    SUSPICIOUS_FILENAME_PATTERNS,
    SUSPICIOUS_FILENAME_SCORE,
    SUSPICIOUS_FINANCIAL_SCORE,
    SUSPICIOUS_URL_PATTERNS,
    SUSPICIOUS_URL_SCORE,
    TOXIC_PROFANITY,
    UPPERCASE_PATTERN,
    URGENCY_TERMS,
    URL_PATTERN,
)
from .models import Attachment, Violation


# =============================================================================
# Compiled Word Patterns
# =============================================================================

def _word_pattern(word: str) -> Pattern:
    return re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)


_PROFANITY_PATTERNS: List[Tuple[str, str, Pattern]] = [
    (language, word, _word_pattern(word))
    for language, words in PROFANITY_LANGUAGES
    for word in words
]
_TOXIC_PROFANITY_PATTERNS: List[Pattern] = [_word_pattern(w) for w in TOXIC_PROFANITY]
_EXPLICIT_PATTERNS: List[Tuple[str, Pattern]] = [(t, _word_pattern(t)) for t in EXPLICIT_TERMS]


# =============================================================================
# Helpers
# =============================================================================

def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between two strings (insert, delete, substitute)."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i]
        for j, char_b in enumerate(b, start=1):
            if char_a == char_b:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j - 1], previous[j], current[j - 1]) + 1)
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized similarity in [0, 1]: 1 - distance / longer length."""
    longer = max(len(a), len(b))
    if longer == 0:
        return 1.0
    return (longer - levenshtein_distance(a, b)) / longer


def extract_urls(text: str) -> List[str]:
    """All http(s) URLs in the text, scheme and host only."""
    return URL_PATTERN.findall(text)


def is_image_file(filename: str) -> bool:
    return os.path.splitext(filename.lower())[1] in IMAGE_EXTENSIONS


def run_detector(
    name: str,
    detector: Callable[..., List[Violation]],
    *args: Any,
) -> List[Violation]:
    """
    Run one detector, isolating its failures.

    Args:
        name: Detector name for logs and the failure counter.
        detector: The detector function.
        *args: Arguments passed through.

    Returns:
        The detector's violations, or an empty list if it raised.
    """
    try:
        return detector(*args)
    except Exception as e:
        logger.warning("Detector Failed", [
            ("Detector", name),
            ("Error Type", type(e).__name__),
            ("Error", str(e)[:100]),
        ])
        record_failure(f"detector.{name}", e)
        return []


def _first_match(patterns: Iterable[Pattern], text: str) -> Optional[Pattern]:
    for pattern in patterns:
        if pattern.search(text):
            return pattern
    return None


# =============================================================================
# Spam Patterns (automod)
# =============================================================================

def detect_boost_scam(text: str) -> List[Violation]:
    """Fake Discord Nitro/Boost offers. First match only."""
    pattern = _first_match(BOOST_SCAM_PATTERNS, text)
    if pattern is None:
        return []
    return [Violation(
        type="boost_scam",
        confidence=BOOST_SCAM_SCORE,
        reason="Fake Discord Nitro/Boost offer detected",
        category=Category.SPAM,
        extra={"pattern": pattern.pattern},
    )]


def detect_suspicious_urls(text: str) -> List[Violation]:
    """Lookalike/typo domains written in the text. First match only."""
    pattern = _first_match(SUSPICIOUS_URL_PATTERNS, text)
    if pattern is None:
        return []
    return [Violation(
        type="suspicious_url",
        confidence=SUSPICIOUS_URL_SCORE,
        reason="Suspicious URL detected",
        category=Category.SPAM,
        extra={"pattern": pattern.pattern},
    )]


@dataclass(frozen=True)
class ProfanityMatch:
    """Profanity words found, with the languages they belong to."""
    words: Tuple[str, ...] = ()
    languages: Tuple[str, ...] = ()

    @property
    def found(self) -> bool:
        return bool(self.words)

    @property
    def count(self) -> int:
        return len(self.words)

    @property
    def language(self) -> str:
        return " & ".join(self.languages)


def find_profanity(text: str) -> ProfanityMatch:
    """Whole-word profanity lookup across every configured language."""
    words: List[str] = []
    languages: List[str] = []
    for language, word, pattern in _PROFANITY_PATTERNS:
        if pattern.search(text):
            words.append(word)
            if language not in languages:
                languages.append(language)
    return ProfanityMatch(words=tuple(words), languages=tuple(languages))


def detect_profanity(text: str) -> List[Violation]:
    match = find_profanity(text)
    if not match.found:
        return []
    plural = "s" if match.count > 1 else ""
    return [Violation(
        type="profanity",
        confidence=PROFANITY_SCORE,
        reason=f"Profanity detected: {match.language} ({match.count} word{plural})",
        category=Category.SPAM,
        extra={"words": list(match.words), "language": match.language},
    )]


def detect_mass_mentions(text: str) -> List[Violation]:
    mentions = len(MENTION_PATTERN.findall(text))
    if mentions <= MENTION_LIMIT:
        return []
    return [Violation(
        type="mass_mentions",
        confidence=MASS_MENTION_SCORE,
        reason=f"Mass mentions detected ({mentions})",
        category=Category.SPAM,
        extra={"count": mentions},
    )]


def detect_excessive_caps(text: str) -> List[Violation]:
    if len(text) <= CAPS_MIN_LENGTH:
        return []
    ratio = len(UPPERCASE_PATTERN.findall(text)) / len(text)
    if ratio <= CAPS_RATIO_LIMIT:
        return []
    return [Violation(
        type="excessive_caps",
        confidence=EXCESSIVE_CAPS_SCORE,
        reason="Excessive capital letters",
        category=Category.SPAM,
        extra={"ratio": round(ratio, 2)},
    )]


def detect_repeated_characters(text: str) -> List[Violation]:
    if not REPEATED_CHAR_PATTERN.search(text):
        return []
    return [Violation(
        type="repeated_characters",
        confidence=REPEATED_CHARS_SCORE,
        reason="Excessive repeated characters",
        category=Category.SPAM,
    )]


def detect_spam_phrases(text: str) -> List[Violation]:
    pattern = _first_match(SPAM_PHRASE_PATTERNS, text)
    if pattern is None:
        return []
    return [Violation(
        type="spam_phrase",
        confidence=SPAM_PHRASE_SCORE,
        reason="Common spam phrase detected",
        category=Category.SPAM,
        extra={"pattern": pattern.pattern},
    )]


# =============================================================================
# Phishing
# =============================================================================

def detect_phishing(text: str) -> List[Violation]:
    """
    Check every URL hostname in the text.

    Per hostname, first hit wins: known phishing domain, then suspicious
    substring pattern, then Levenshtein spoofing of a legitimate domain.
    Malformed URLs are skipped.
    """
    results: List[Violation] = []

    for url in extract_urls(text):
        try:
            domain = (urlsplit(url).hostname or "").lower()
        except ValueError:
            continue
        if not domain:
            continue

        if domain in PHISHING_DOMAINS:
            results.append(Violation(
                type="known_phishing",
                confidence=KNOWN_PHISHING_SCORE,
                reason=f"Known phishing domain: {domain}",
                category=Category.PHISHING,
                extra={"url": url, "domain": domain},
            ))
            continue

        pattern = _first_match(SUSPICIOUS_DOMAIN_PATTERNS, domain)
        if pattern is not None:
            results.append(Violation(
                type="suspicious_pattern",
                confidence=SUSPICIOUS_DOMAIN_SCORE,
                reason=f"Suspicious domain pattern: {domain}",
                category=Category.PHISHING,
                extra={"url": url, "domain": domain, "pattern": pattern.pattern},
            ))
            continue

        for legit in LEGITIMATE_DOMAINS:
            if domain == legit:
                continue
            score = similarity(domain, legit)
            if score > SPOOFING_SIMILARITY_LIMIT:
                results.append(Violation(
                    type="domain_spoofing",
                    confidence=score,
                    reason=f"{domain} imitates {legit}",
                    category=Category.PHISHING,
                    extra={"url": url, "domain": domain, "spoofing": legit},
                ))
                break

    return results


# =============================================================================
# Scam Links
# =============================================================================

def detect_scam_links(text: str) -> List[Violation]:
    """Every matching scam pattern, plus the financial-with-urgency composite."""
    results: List[Violation] = [
        Violation(
            type=scam_type,
            confidence=confidence,
            reason=f"{scam_type.replace('_', ' ').capitalize()} pattern detected",
            category=Category.SCAM,
            extra={"pattern": pattern.pattern},
        )
        for pattern, scam_type, confidence in SCAM_PATTERNS
        if pattern.search(text)
    ]

    lowered = text.lower()
    financial = sum(1 for term in FINANCIAL_TERMS if term in lowered)
    urgency = sum(1 for term in URGENCY_TERMS if term in lowered)

    if financial >= FINANCIAL_TERM_MINIMUM and urgency >= 1:
        results.append(Violation(
            type="suspicious_financial",
            confidence=SUSPICIOUS_FINANCIAL_SCORE,
            reason="Multiple financial terms with urgency indicators",
            category=Category.SCAM,
            extra={"financial_terms": financial, "urgency_terms": urgency},
        ))

    return results


# =============================================================================
# Malicious Files
# =============================================================================

def detect_malicious_file(attachment: Attachment) -> List[Violation]:
    """Extension, double extension, filename keyword and size checks."""
    results: List[Violation] = []
    filename = attachment.name.lower()
    extension = os.path.splitext(filename)[1]

    if extension in DANGEROUS_EXTENSIONS:
        results.append(Violation(
            type="dangerous_extension",
            confidence=DANGEROUS_EXTENSION_SCORE,
            reason="Executable file type detected",
            category=Category.MALICIOUS_FILE,
            extra={"extension": extension, "filename": attachment.name},
        ))

    if DOUBLE_EXTENSION_PATTERN.search(filename):
        results.append(Violation(
            type="double_extension",
            confidence=DOUBLE_EXTENSION_SCORE,
            reason="Double file extension detected",
            category=Category.MALICIOUS_FILE,
            extra={"filename": attachment.name},
        ))

    pattern = _first_match(SUSPICIOUS_FILENAME_PATTERNS, filename)
    if pattern is not None:
        results.append(Violation(
            type="suspicious_filename",
            confidence=SUSPICIOUS_FILENAME_SCORE,
            reason="Suspicious filename pattern",
            category=Category.MALICIOUS_FILE,
            extra={"pattern": pattern.pattern, "filename": attachment.name},
        ))

    if extension == ".exe":
        if attachment.size < SMALL_EXECUTABLE_BYTES:
            results.append(Violation(
                type="suspicious_size",
                confidence=SMALL_EXECUTABLE_SCORE,
                reason="Executable file unusually small",
                category=Category.MALICIOUS_FILE,
                extra={"size": attachment.size},
            ))
        elif attachment.size > LARGE_EXECUTABLE_BYTES:
            results.append(Violation(
                type="suspicious_size",
                confidence=LARGE_EXECUTABLE_SCORE,
                reason="Executable file unusually large",
                category=Category.MALICIOUS_FILE,
                extra={"size": attachment.size},
            ))

    return results


# =============================================================================
# Explicit Content
# =============================================================================

def detect_explicit_content(
    text: str,
    attachments: Iterable[Attachment] = (),
) -> List[Violation]:
    results: List[Violation] = []

    matches = [term for term, pattern in _EXPLICIT_PATTERNS if pattern.search(text)]
    if matches:
        results.append(Violation(
            type="explicit_text",
            confidence=min(EXPLICIT_TEXT_CAP, round(len(matches) * EXPLICIT_TEXT_STEP, 2)),
            reason="Explicit terms detected in message",
            category=Category.EXPLICIT,
            extra={"matches": matches},
        ))

    for attachment in attachments:
        if not is_image_file(attachment.name):
            continue
        filename = attachment.name.lower()
        if any(term in filename for term in EXPLICIT_TERMS):
            results.append(Violation(
                type="explicit_filename",
                confidence=EXPLICIT_FILENAME_SCORE,
                reason="Explicit content suggested by filename",
                category=Category.EXPLICIT,
                extra={"filename": attachment.name},
            ))

    return results


# =============================================================================
# Toxicity
# =============================================================================

def count_profanity(text: str) -> int:
    """Distinct toxic profanity words present in the text."""
    return sum(1 for pattern in _TOXIC_PROFANITY_PATTERNS if pattern.search(text))


def detect_toxicity(text: str) -> List[Violation]:
    """Hate speech (every match), harassment (first match) and profanity volume."""
    results: List[Violation] = []
    lowered = text.lower()

    for pattern, severity, subtype in HATE_SPEECH_PATTERNS:
        if pattern.search(lowered):
            results.append(Violation(
                type="hate_speech",
                confidence=HIGH_SEVERITY_SCORE if severity == "high" else MEDIUM_SEVERITY_SCORE,
                reason=f"{subtype} detected",
                category=Category.TOXICITY,
                extra={"subtype": subtype, "severity": severity},
            ))

    if _first_match(HARASSMENT_PATTERNS, lowered) is not None:
        results.append(Violation(
            type="harassment",
            confidence=HARASSMENT_SCORE,
            reason="Harassment pattern detected",
            category=Category.TOXICITY,
        ))

    count = count_profanity(text)
    if count > PROFANITY_COUNT_LIMIT:
        results.append(Violation(
            type="excessive_profanity",
            confidence=min(PROFANITY_CAP, round(count * PROFANITY_STEP, 2)),
            reason="Excessive profanity detected",
            category=Category.TOXICITY,
            extra={"count": count},
        ))

    return results


# =============================================================================
# Detector Registries
# =============================================================================

AUTOMOD_DETECTORS: List[Tuple[str, Callable[[str], List[Violation]]]] = [
    ("profanity", detect_profanity),
    ("boost_scam", detect_boost_scam),
    ("suspicious_url", detect_suspicious_urls),
    ("mass_mentions", detect_mass_mentions),
    ("excessive_caps", detect_excessive_caps),
    ("repeated_characters", detect_repeated_characters),
    ("spam_phrase", detect_spam_phrases),
]
"""Detectors summed by the automod preview, in reporting order."""


LIVE_SPAM_DETECTORS: List[Tuple[str, Callable[[str], List[Violation]]]] = [
    ("boost_scam", detect_boost_scam),
    ("suspicious_url", detect_suspicious_urls),
]
"""
Spam detectors that also run in live analysis when anti_spam is on.

Single-signal heuristics such as one profane word score high enough on
their own to cross the max-confidence threshold, so they stay
in the summed preview only. Profanity reaches live moderation through
the toxicity detector's excessive profanity rule.
"""


__all__ = [
    "levenshtein_distance",
    "similarity",
    "extract_urls",
    "is_image_file",
    "run_detector",
    "ProfanityMatch",
    "find_profanity",
    "count_profanity",
    "detect_boost_scam",
    "detect_suspicious_urls",
    "detect_profanity",
    "detect_mass_mentions",
    "detect_excessive_caps",
    "detect_repeated_characters",
    "detect_spam_phrases",
    "detect_phishing",
    "detect_scam_links",
    "detect_malicious_file",
    "detect_explicit_content",
    "detect_toxicity",
    "AUTOMOD_DETECTORS",
    "LIVE_SPAM_DETECTORS",
    "URL_PATTERN",
]
