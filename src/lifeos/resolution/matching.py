"""Tiered fuzzy scoring of a human-typed name against candidate titles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Iterable, Optional, TypeVar

from lifeos.core.config import MatchPolicy

T = TypeVar("T")


def _normalize(text: str) -> str:
    return (text or "").strip().lower()


def score_match(query: str, title: str, policy: MatchPolicy = MatchPolicy()) -> float:
    """Score `title` against `query` on a 0..100 scale.

    Tiers: exact, title contains query, query contains title, then word overlap
    scaled by `policy.word_overlap_scale`. Two words overlap when equal or when
    either contains the other.
    """
    q = _normalize(query)
    t = _normalize(title)
    if not q or not t:
        return 0.0
    if t == q:
        return policy.exact
    if q in t:
        return policy.candidate_contains_query
    if t in q:
        return policy.query_contains_candidate

    q_words = q.split()
    t_words = t.split()
    matching = sum(
        1 for qw in q_words if any(qw == tw or qw in tw or tw in qw for tw in t_words)
    )
    if not matching:
        return 0.0
    return matching / max(len(q_words), len(t_words)) * policy.word_overlap_scale


@dataclass(frozen=True)
class Scored(Generic[T]):
    item: T
    score: float


def best_match(
    query: str,
    candidates: Iterable[tuple[T, str]],
    policy: MatchPolicy = MatchPolicy(),
) -> Optional[Scored[T]]:
    """Highest-scoring `(item, title)` pair at or above the threshold.

    Zero scores are never tracked and ties keep the first candidate seen.
    """
    best: Optional[Scored[T]] = None
    for item, candidate_title in candidates:
        score = score_match(query, candidate_title, policy)
        if score > 0 and (best is None or score > best.score):
            best = Scored(item=item, score=score)
    if best is None or best.score < policy.threshold:
        return None
    return best


__all__ = ["Scored", "best_match", "score_match"]
