"""Word-level comparison of an original clause and a suggested rewrite."""

import difflib
import re
from typing import List, Optional, Sequence, Tuple

from ..analysis.evaluator import ClauseEvaluator
from ..analysis.scorer import ComplianceScorer
from ..models.compliance import ComplianceRule
from ..models.enums import ComparisonRecommendation, DifferenceType
from ..models.suggestion import ClauseComparison, ClauseDifference


_WORD_RE = re.compile(r"\S+")

ACCEPT_THRESHOLD = 0.8
REJECT_THRESHOLD = 0.4


def _words(text: str) -> List[Tuple[str, int]]:
    return [(m.group(0), m.start()) for m in _WORD_RE.finditer(text or "")]


class ClauseComparator:
    """
    Compares clause versions.

    Differences come from a word-level ``difflib`` diff; a deleted run that
    reappears verbatim as an inserted run elsewhere is reported once as a
    reordering. Positions are character offsets into the original clause.

    Without rules the overall score is the word-sequence similarity. With
    rules it blends that similarity (60%) with the rewrite's compliance
    score (40%), and improvements and concerns name the rules the rewrite
    resolves and introduces.
    """

    def __init__(
        self,
        evaluator: Optional[ClauseEvaluator] = None,
        scorer: Optional[ComplianceScorer] = None,
    ):
        self._evaluator = evaluator or ClauseEvaluator()
        self._scorer = scorer or ComplianceScorer()

    def compare(
        self,
        original: str,
        suggested: str,
        rules: Optional[Sequence[ComplianceRule]] = None,
    ) -> ClauseComparison:
        """
        Compare an original clause with a suggested rewrite.

        Args:
            original: Original clause text.
            suggested: Suggested clause text.
            rules: Rules used to judge compliance impact, if any.

        Returns:
            ClauseComparison with differences, score and recommendation.
        """
        original_words = _words(original)
        suggested_words = _words(suggested)
        matcher = difflib.SequenceMatcher(
            None,
            [w.casefold() for w, _ in original_words],
            [w.casefold() for w, _ in suggested_words],
            autojunk=False,
        )
        differences = self._differences(matcher, original, original_words, suggested_words)
        similarity = matcher.ratio() if (original_words or suggested_words) else 1.0

        improvements: List[str] = []
        concerns: List[str] = []
        overall = similarity
        if rules:
            rules = list(rules)
            before = self._evaluator.evaluate(original, rules)
            after = self._evaluator.evaluate(suggested, rules)
            before_ids = {v.rule_id for v in before}
            after_ids = {v.rule_id for v in after}
            names = {r.id: r.name for r in rules}
            improvements = [f"Resolves {names[rule_id]}" for rule_id in sorted(before_ids - after_ids)]
            concerns = [f"Introduces {names[rule_id]}" for rule_id in sorted(after_ids - before_ids)]
            compliance = self._scorer.score(after, rules).overall_score / self._scorer.settings.max_score
            overall = 0.6 * similarity + 0.4 * compliance

        deleted = sum(len(d.original_text.split()) for d in differences if d.type == DifferenceType.DELETION)
        if original_words and deleted * 2 > len(original_words):
            concerns.append("Removes most of the original wording")

        overall = round(max(0.0, min(1.0, overall)), 4)
        return ClauseComparison(
            original_clause=original,
            suggested_clause=suggested,
            differences=differences,
            overall_score=overall,
            improvements=improvements,
            concerns=concerns,
            recommendation=self.recommend(overall, concerns),
        )

    @staticmethod
    def recommend(score: float, concerns: Sequence[str]) -> ComparisonRecommendation:
        if score > ACCEPT_THRESHOLD and not concerns:
            return ComparisonRecommendation.ACCEPT
        if score < REJECT_THRESHOLD:
            return ComparisonRecommendation.REJECT
        return ComparisonRecommendation.MODIFY

    @staticmethod
    def _differences(matcher, original, original_words, suggested_words) -> List[ClauseDifference]:
        def position(index: int) -> int:
            return original_words[index][1] if index < len(original_words) else len(original)

        def join(words, start, end) -> str:
            return " ".join(w for w, _ in words[start:end])

        differences: List[ClauseDifference] = []
        for tag, i1, i2, j1, j2 in matcher.get_opcodes():
            if tag == "equal":
                continue
            if tag == "insert":
                differences.append(ClauseDifference(
                    type=DifferenceType.ADDITION,
                    original_text="",
                    suggested_text=join(suggested_words, j1, j2),
                    position=position(i1),
                    explanation="Added wording",
                ))
            elif tag == "delete":
                differences.append(ClauseDifference(
                    type=DifferenceType.DELETION,
                    original_text=join(original_words, i1, i2),
                    suggested_text="",
                    position=position(i1),
                    explanation="Removed wording",
                ))
            else:
                differences.append(ClauseDifference(
                    type=DifferenceType.MODIFICATION,
                    original_text=join(original_words, i1, i2),
                    suggested_text=join(suggested_words, j1, j2),
                    position=position(i1),
                    explanation="Reworded",
                ))

        # Pair a deletion with an identical addition into a single reordering
        pairs = {}
        paired_additions = set()
        for index, diff in enumerate(differences):
            if diff.type != DifferenceType.DELETION:
                continue
            for other_index, other in enumerate(differences):
                if (other_index not in paired_additions
                        and other.type == DifferenceType.ADDITION
                        and other.suggested_text.casefold() == diff.original_text.casefold()):
                    pairs[index] = other_index
                    paired_additions.add(other_index)
                    break

        merged: List[ClauseDifference] = []
        for index, diff in enumerate(differences):
            if index in paired_additions:
                continue
            if index in pairs:
                diff = ClauseDifference(
                    type=DifferenceType.REORDERING,
                    original_text=diff.original_text,
                    suggested_text=differences[pairs[index]].suggested_text,
                    position=diff.position,
                    explanation="Moved wording",
                )
            merged.append(diff)
        return merged
