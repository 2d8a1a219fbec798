"""
Spam detection service.

Scores text from three independent signals (keyword matches, suspicious
patterns and structural heuristics) and combines them into a 0-100 score.
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shared_lib.config import SpamScoringConfig
from ..models import SpamKeyword
from ..schemas import SpamAnalysisResult

logger = logging.getLogger(__name__)


SUSPICIOUS_PHRASES = (
    "click here",
    "buy now",
    "limited time",
    "act now",
    "free money",
    "make money fast",
    "work from home",
    "get paid",
    "no experience",
)

LINK_PATTERN = re.compile(r"https?://", re.IGNORECASE)
REPEATED_CHAR_PATTERN = re.compile(r"(.)\1{4,}")
UPPERCASE_PATTERN = re.compile(r"[A-Z]")
FINANCIAL_PATTERN = re.compile(r"(bitcoin|crypto|invest|profit|roi|guaranteed returns)", re.IGNORECASE)
EMOJI_PATTERN = re.compile("[\U0001F600-\U0001F64F]")
DIGIT_RUN_PATTERN = re.compile(r"\d{8,}")
SPECIAL_CHAR_PATTERN = re.compile(r"[^a-zA-Z0-9\s]")


class SpamKeywordNotFoundError(Exception):
    pass


class SpamKeywordExistsError(Exception):
    pass


@dataclass(frozen=True)
class WeightedKeyword:
    keyword: str
    severity: int


def round_half_up(value: float) -> int:
    # Rounds 37.5 to 38, not to the nearest even integer
    return int(math.floor(round(value, 6) + 0.5))


class SpamScorer:
    """Pure scoring rules. Holds no state besides its configuration."""

    def __init__(self, config: Optional[SpamScoringConfig] = None):
        self.config = config or SpamScoringConfig()

    def score(
        self,
        content: str,
        title: Optional[str],
        keywords: Sequence[WeightedKeyword],
    ) -> SpamAnalysisResult:
        raw_text = f"{title or ''} {content}"
        text = raw_text.lower()

        keyword_score = self.keyword_score(text, keywords)
        pattern_score = self.pattern_score(text, raw_text)
        heuristic_score = self.heuristic_score(text, content)

        combined = round_half_up(
            keyword_score * self.config.keyword_weight
            + pattern_score * self.config.pattern_weight
            + heuristic_score * self.config.heuristic_weight
        )
        spam_score = max(0, min(100, combined))
        flagged = self.flagged_keywords(text, keywords)

        return SpamAnalysisResult(
            spam_score=spam_score,
            is_spam=spam_score >= self.config.spam_threshold,
            flagged_keywords=flagged,
            reason=self.reason(flagged, pattern_score, heuristic_score),
            confidence=self.confidence(keyword_score, pattern_score, heuristic_score),
        )

    @staticmethod
    def _keyword_regex(keyword: str):
        return re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)

    def keyword_score(self, text: str, keywords: Sequence[WeightedKeyword]) -> int:
        score = 0
        for entry in keywords:
            matches = len(self._keyword_regex(entry.keyword).findall(text))
            score += matches * entry.severity * self.config.keyword_match_points
        return min(100, score)

    def flagged_keywords(self, text: str, keywords: Sequence[WeightedKeyword]) -> List[str]:
        return [
            entry.keyword for entry in keywords
            if self._keyword_regex(entry.keyword).search(text)
        ]

    def pattern_score(self, text: str, raw_text: str) -> int:
        """Score link spam, shouting and sales language."""
        score = 0

        link_count = len(LINK_PATTERN.findall(text))
        if link_count > 5:
            score += 30
        elif link_count > 3:
            score += 15

        if REPEATED_CHAR_PATTERN.search(text):
            score += 15

        # Uses the text before lowercasing, so shouty text scores 20 points higher here
        if len(raw_text) > 20:
            caps_ratio = len(UPPERCASE_PATTERN.findall(raw_text)) / len(raw_text)
            if caps_ratio > 0.5:
                score += 20

        if text.count("!") > 5:
            score += 15

        for phrase in SUSPICIOUS_PHRASES:
            if phrase in text:
                score += 10

        if FINANCIAL_PATTERN.search(text):
            score += 10

        return min(100, score)

    def heuristic_score(self, text: str, content: str) -> int:
        """Score structural oddities of the raw content."""
        score = 0

        if len(text) < 20:
            score += 20

        if len(content) > 2000 and "\n\n" not in content:
            score += 15

        if len(EMOJI_PATTERN.findall(content)) > 10:
            score += 20

        if len(DIGIT_RUN_PATTERN.findall(content)) > 2:
            score += 15

        if content:
            special_ratio = len(SPECIAL_CHAR_PATTERN.findall(content)) / len(content)
            if special_ratio > 0.3:
                score += 20

        return min(100, score)

    @staticmethod
    def confidence(keyword_score: int, pattern_score: int, heuristic_score: int) -> float:
        scores = (keyword_score, pattern_score, heuristic_score)
        high = sum(1 for s in scores if s > 50)
        if high >= 2:
            return 0.9
        if high == 1 and max(scores) > 75:
            return 0.7
        if max(scores) > 50:
            return 0.5
        return 0.3

    def reason(self, flagged: List[str], pattern_score: int, heuristic_score: int) -> str:
        reasons = []
        if flagged:
            quoted = ", ".join(flagged[:self.config.reason_keyword_limit])
            reasons.append(f"Contains spam keywords: {quoted}")
        if pattern_score > 50:
            reasons.append("Suspicious patterns detected")
        if heuristic_score > 50:
            reasons.append("Content structure indicates spam")
        return "; ".join(reasons) if reasons else "Low spam probability"


class SpamDetectionService:
    """Keyword-backed spam analysis."""

    def __init__(self, db: AsyncSession, config: Optional[SpamScoringConfig] = None):
        self.db = db
        self.scorer = SpamScorer(config)

    async def analyze_content(self, content: str, title: Optional[str] = None) -> SpamAnalysisResult:
        """
        Analyze content for spam.

        Never raises: any failure, including an unreadable keyword table,
        yields a zero score with reason "Analysis failed".
        """
        try:
            keywords = await self._active_keywords()
            return self.scorer.score(content, title, keywords)
        except Exception as e:
            logger.error(f"Error analyzing content for spam: {e}", exc_info=True)
            return SpamAnalysisResult.failed()

    async def analyze_with_ml_model(self, content: str) -> SpamAnalysisResult:
        # No model is wired in yet; the rule engine answers instead
        logger.info("ML model not configured, using rule-based detection")
        return await self.analyze_content(content)

    async def _active_keywords(self) -> List[WeightedKeyword]:
        result = await self.db.execute(
            select(SpamKeyword.keyword, SpamKeyword.severity)
            .where(SpamKeyword.is_active == True)
            .order_by(SpamKeyword.id)
        )
        return [WeightedKeyword(keyword, severity) for keyword, severity in result.all()]

    async def list_spam_keywords(self, active_only: bool = False) -> List[SpamKeyword]:
        query = select(SpamKeyword).order_by(SpamKeyword.id)
        if active_only:
            query = query.where(SpamKeyword.is_active == True)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def add_spam_keyword(self, keyword: str, severity: int = 1) -> SpamKeyword:
        entry = SpamKeyword(keyword=keyword.strip().lower(), severity=severity, is_active=True)
        self.db.add(entry)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise SpamKeywordExistsError(f"Spam keyword already exists: {entry.keyword}")
        await self.db.refresh(entry)
        logger.info(f"Spam keyword added: {entry.keyword}")
        return entry

    async def update_spam_keyword(
        self,
        keyword_id: int,
        severity: Optional[int] = None,
        is_active: Optional[bool] = None,
    ) -> SpamKeyword:
        entry = await self.db.get(SpamKeyword, keyword_id)
        if entry is None:
            raise SpamKeywordNotFoundError(f"Spam keyword {keyword_id} not found")
        if severity is not None:
            entry.severity = severity
        if is_active is not None:
            entry.is_active = is_active
        await self.db.commit()
        await self.db.refresh(entry)
        logger.info(f"Spam keyword updated: {keyword_id}")
        return entry
