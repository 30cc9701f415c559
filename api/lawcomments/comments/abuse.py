"""Abuse detection for comment submissions.

Pure evaluation, no I/O: the caller supplies the submitter's recent history
and receives a verdict combining

- duplicate detection: normalized content compared with the same
  submitter's earlier comments on the same paragraph within a lookback
  window (identical text or word-set similarity above a threshold)
- a spam score in [0, 1] summed from weighted heuristic signals
"""

import re
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from .models import PriorSubmission


SPAM_KEYWORDS_EN = (
    "viagra",
    "cialis",
    "casino",
    "poker",
    "lottery",
    "prize",
    "buy now",
    "click here",
    "free money",
    "get rich",
    "work from home",
    "credit card",
    "bank account",
    "password",
    "login",
    "verify account",
    "congratulations",
    "you won",
    "claim now",
    "limited time",
)

SPAM_KEYWORDS_HE = (
    "קזינו",
    "הימורים",
    "פוקר",
    "הגרלה",
    "פרס",
    "כסף חינם",
    "לחץ כאן",
    "קנה עכשיו",
    "התעשר מהר",
    "כרטיס אשראי",
    "חשבון בנק",
    "סיסמה",
    "התחבר",
    "אמת חשבון",
    "מזל טוב",
    "זכית",
    "תבע עכשיו",
    "זמן מוגבל",
)

SPAM_KEYWORDS = SPAM_KEYWORDS_EN + SPAM_KEYWORDS_HE

# Hebrew attaches one-letter prefixes (and, the, in, ...) to the next word
HEBREW_PREFIX = "[והבכלמש]?"


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    prefix = HEBREW_PREFIX if keyword in SPAM_KEYWORDS_HE else ""
    return re.compile(rf"(?<!\w){prefix}{re.escape(keyword)}(?!\w)")


# Whole words only, so "פרסום" (publication) does not match "פרס" (prize)
SPAM_KEYWORD_PATTERNS = {keyword: _keyword_pattern(keyword) for keyword in SPAM_KEYWORDS}

URL_PATTERN = re.compile(r"https?://\S+|\bwww\.\S+", re.IGNORECASE)
REPEATED_CHAR_PATTERN = re.compile(r"(\S)\1{9,}")
PHONE_PATTERN = re.compile(
    r"(?<!\d)(?:\+?\d{1,3}[-.\s]?)?\(?0?\d{1,3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b"
)
EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
UPPERCASE_PATTERN = re.compile(r"[A-ZА-Я]")
CASED_LETTER_PATTERN = re.compile(r"[A-Za-zА-Яа-я]")
WORD_CLEAN_PATTERN = re.compile(r"\W")
NON_WORD_PATTERN = re.compile(r"[^\w\s]")
WHITESPACE_PATTERN = re.compile(r"\s+")

MAX_URLS = 2
MAX_PHONE_NUMBERS = 2
MAX_EMAIL_ADDRESSES = 1
WORD_REPEAT_LIMIT = 10
MIN_REPEATED_WORD_LENGTH = 3
CAPS_MIN_LETTERS = 20
CAPS_RATIO = 0.5

# Signals that mark a comment as spam on their own weigh 1.0 or just under;
# repeated characters only tip the balance together with another signal.
SIGNAL_WEIGHTS = {
    "spam_keyword": 1.0,
    "excessive_links": 1.0,
    "repeated_word": 1.0,
    "all_caps": 0.8,
    "phone_numbers": 0.8,
    "email_addresses": 0.8,
    "repeated_characters": 0.5,
}


@dataclass(frozen=True)
class SpamSignal:
    """One heuristic that fired, with a human-readable reason."""

    name: str
    reason: str

    @property
    def weight(self) -> float:
        return SIGNAL_WEIGHTS[self.name]


@dataclass
class AbuseVerdict:
    """Outcome of abuse evaluation for a single submission."""

    spam_score: float
    is_spam: bool
    is_duplicate: bool
    signals: list[SpamSignal] = field(default_factory=list)

    @property
    def reasons(self) -> list[str]:
        return [signal.reason for signal in self.signals]

    @property
    def rejection_reason(self) -> str | None:
        """Reason stored on an auto-rejected comment."""
        if not self.is_spam:
            return None
        return "סומן אוטומטית כספאם: " + "; ".join(self.reasons)


def fold_whitespace(content: str) -> str:
    return WHITESPACE_PATTERN.sub(" ", content).strip()


def normalize_for_comparison(content: str) -> str:
    """Lower-case, drop punctuation and symbols, collapse whitespace.

    Letters and digits of every script are kept.
    """
    return fold_whitespace(NON_WORD_PATTERN.sub("", content.lower()))


def word_similarity(first: str, second: str) -> float:
    """Jaccard similarity of the word sets of two normalized strings.

    Text made only of symbols normalizes to "" and has no words to compare,
    so an empty side is never similar to anything.
    """
    if not first or not second:
        return 0.0
    if first == second:
        return 1.0
    words_first = set(first.split(" "))
    words_second = set(second.split(" "))
    return len(words_first & words_second) / len(words_first | words_second)


def detect_spam_signals(content: str, display_name: str = "") -> list[SpamSignal]:
    """Run every spam heuristic over a submission."""
    signals: list[SpamSignal] = []
    full_text = f"{display_name} {content}".lower()

    keyword = next(
        (k for k, pattern in SPAM_KEYWORD_PATTERNS.items() if pattern.search(full_text)),
        None,
    )
    if keyword:
        signals.append(
            SpamSignal("spam_keyword", f'תגובה מכילה מילת ספאם חשודה: "{keyword}"')
        )

    urls = URL_PATTERN.findall(full_text)
    if len(urls) > MAX_URLS:
        signals.append(
            SpamSignal("excessive_links", f"תגובה מכילה יותר מדי קישורים ({len(urls)})")
        )

    if REPEATED_CHAR_PATTERN.search(content):
        signals.append(
            SpamSignal("repeated_characters", "תגובה מכילה רצף תווים חוזרים")
        )

    words = Counter(
        cleaned
        for cleaned in (WORD_CLEAN_PATTERN.sub("", w.lower()) for w in content.split())
        if len(cleaned) >= MIN_REPEATED_WORD_LENGTH
    )
    if words:
        word, count = words.most_common(1)[0]
        if count >= WORD_REPEAT_LIMIT:
            signals.append(
                SpamSignal("repeated_word", f'תגובה מכילה חזרה מוגזמת על המילה "{word}"')
            )

    letters = CASED_LETTER_PATTERN.findall(content)
    uppercase = UPPERCASE_PATTERN.findall(content)
    if len(letters) > CAPS_MIN_LETTERS and len(uppercase) / len(letters) > CAPS_RATIO:
        signals.append(
            SpamSignal("all_caps", "תגובה כתובה באותיות גדולות בלבד (CAPS LOCK)")
        )

    if len(PHONE_PATTERN.findall(content)) > MAX_PHONE_NUMBERS:
        signals.append(
            SpamSignal("phone_numbers", "תגובה מכילה יותר מדי מספרי טלפון")
        )

    if len(EMAIL_PATTERN.findall(content)) > MAX_EMAIL_ADDRESSES:
        signals.append(
            SpamSignal("email_addresses", "תגובה מכילה כתובות דוא״ל מרובות")
        )

    return signals


class AbuseDetector:
    """Combines duplicate detection and spam scoring."""

    def __init__(
        self,
        spam_score_threshold: float = 0.75,
        lookback: timedelta = timedelta(hours=24),
        similarity_threshold: float = 0.9,
    ):
        self.spam_score_threshold = spam_score_threshold
        self.lookback = lookback
        self.similarity_threshold = similarity_threshold

    def is_duplicate(
        self,
        paragraph_id: int,
        content: str,
        history: Iterable[PriorSubmission],
        now: datetime,
    ) -> bool:
        """Check content against the submitter's recent comments on a paragraph."""
        normalized = normalize_for_comparison(content)
        since = now - self.lookback
        for prior in history:
            if prior.paragraph_id != paragraph_id or prior.submitted_at < since:
                continue
            if not normalized:
                if fold_whitespace(content) == fold_whitespace(prior.content):
                    return True
                continue
            similarity = word_similarity(
                normalized, normalize_for_comparison(prior.content)
            )
            if similarity >= self.similarity_threshold:
                return True
        return False

    def spam_score(self, signals: Iterable[SpamSignal]) -> float:
        return min(1.0, sum(signal.weight for signal in signals))

    def evaluate(
        self,
        paragraph_id: int,
        content: str,
        history: Iterable[PriorSubmission],
        display_name: str = "",
        now: datetime | None = None,
    ) -> AbuseVerdict:
        """Evaluate a submission.

        Args:
            paragraph_id: Paragraph the comment targets
            content: Comment text
            history: The same submitter's earlier comments
            display_name: Submitter's display name, also scanned for spam tokens
            now: Evaluation time (defaults to the current UTC time)
        """
        now = now or datetime.now(UTC)
        signals = detect_spam_signals(content, display_name)
        score = self.spam_score(signals)
        return AbuseVerdict(
            spam_score=score,
            is_spam=score > self.spam_score_threshold,
            is_duplicate=self.is_duplicate(paragraph_id, content, history, now),
            signals=signals,
        )
