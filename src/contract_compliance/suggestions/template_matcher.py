"""Token-overlap matching of clauses against stored clause templates."""

from typing import Iterable, List, Optional, Sequence, Tuple

from ..analysis.text import STOP_WORDS, byte_offset, extract_keywords, iter_tokens, jaccard_similarity
from ..interfaces.providers import ISimilaritySearchProvider
from ..models.suggestion import ClauseTemplate, ClauseTemplateMatch, MatchingSection


class TokenOverlapSearchProvider(ISimilaritySearchProvider):
    """In-memory similarity search using Jaccard token overlap."""

    def search(
        self,
        clause: str,
        templates: Sequence[ClauseTemplate],
        limit: int = 5,
    ) -> List[Tuple[ClauseTemplate, float]]:
        scored = [(t, jaccard_similarity(clause, t.content)) for t in templates]
        scored.sort(key=lambda item: (-item[1], item[0].id))
        return scored[:max(0, limit)]


class ClauseTemplateMatcher:
    """
    Matches a clause against clause templates.

    Similarity is the Jaccard ratio of the stop-word-filtered, casefolded
    token sets. Matching sections are the spans of the input clause covered
    by runs of tokens the template shares, reported as UTF-8 byte offsets.
    """

    def match(
        self,
        clause: str,
        templates: Iterable[ClauseTemplate],
        limit: int = 5,
        min_similarity: float = 0.0,
        exclude_ids: Optional[Iterable[str]] = None,
    ) -> List[ClauseTemplateMatch]:
        """
        Find the templates most similar to a clause.

        Args:
            clause: Clause text.
            templates: Candidate templates.
            limit: Maximum number of matches.
            min_similarity: Matches below this similarity are dropped.
            exclude_ids: Template IDs to ignore.

        Returns:
            Matches ordered by similarity descending, then template ID.
        """
        excluded = set(exclude_ids or ())
        matches = []
        for template in templates:
            if template.id in excluded:
                continue
            similarity = jaccard_similarity(clause, template.content)
            if similarity <= 0.0 or similarity < min_similarity:
                continue
            matches.append(self.build_match(clause, template, similarity))
        matches.sort(key=lambda m: (-m.similarity, m.template.id))
        return matches[:max(0, limit)]

    def build_match(
        self,
        clause: str,
        template: ClauseTemplate,
        similarity: Optional[float] = None,
    ) -> ClauseTemplateMatch:
        """Build a match for a known template, computing sections and modifications."""
        if similarity is None:
            similarity = jaccard_similarity(clause, template.content)
        return ClauseTemplateMatch(
            template=template,
            similarity=round(similarity, 4),
            matching_sections=self.matching_sections(clause, template.content),
            suggested_modifications=self.suggested_modifications(clause, template),
        )

    @staticmethod
    def matching_sections(clause: str, template_text: str) -> List[MatchingSection]:
        """
        Byte-offset spans of ``clause`` built from consecutive shared tokens.

        A run must contain at least one shared non-stop-word token.
        """
        shared = {token for token, _, _ in iter_tokens(template_text)}
        sections: List[MatchingSection] = []
        run: List[Tuple[str, int, int]] = []

        def close_run():
            if run and any(token not in STOP_WORDS for token, _, _ in run):
                start_char, end_char = run[0][1], run[-1][2]
                sections.append(MatchingSection(
                    start=byte_offset(clause, start_char),
                    end=byte_offset(clause, end_char),
                    content=clause[start_char:end_char],
                ))
            run.clear()

        for token, start, end in iter_tokens(clause):
            if token in shared:
                run.append((token, start, end))
            else:
                close_run()
        close_run()
        return sections

    @staticmethod
    def suggested_modifications(clause: str, template: ClauseTemplate, limit: int = 5) -> List[str]:
        """Template keywords the clause lacks, phrased as modification hints."""
        clause_keywords = set(extract_keywords(clause))
        missing = [kw for kw in extract_keywords(template.content) if kw not in clause_keywords]
        if not missing:
            return []
        return [f"Consider covering '{keyword}' as template '{template.title}' does" for keyword in missing[:limit]]
