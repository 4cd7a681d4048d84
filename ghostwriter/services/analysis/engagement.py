"""
Engagement scoring and candidate selection.

Pure functions over the complete post set of one user.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence

from ghostwriter.schemas.records import PostRecord
from ghostwriter.schemas.style import ConfidenceLevel


@dataclass(frozen=True)
class EngagementWeights:
    """Weights for the engagement score. Defaults keep likes < comments < shares."""
    likes: float = 1.0
    comments: float = 2.0
    shares: float = 3.0
    impressions: float = 0.1


DEFAULT_WEIGHTS = EngagementWeights()


@dataclass(frozen=True)
class PostScore:
    post_id: str
    engagement_score: float
    is_high_performing: bool


def compute_engagement_score(
    likes: int,
    comments: int,
    shares: int,
    impressions: Optional[int] = None,
    weights: EngagementWeights = DEFAULT_WEIGHTS,
) -> float:
    """Weighted engagement. Missing impressions contribute nothing."""
    score = (
        (likes or 0) * weights.likes
        + (comments or 0) * weights.comments
        + (shares or 0) * weights.shares
    )
    if impressions is not None:
        score += impressions * weights.impressions
    return float(score)


def high_performing_count(total: int, fraction: float = 0.3) -> int:
    """Size of the top slice: ceil(fraction * total), at least 1 for a non-empty set."""
    if total <= 0:
        return 0
    # round() guards against float noise such as 0.3 * 20 = 6.000000000000001
    return max(1, math.ceil(round(fraction * total, 9)))


def score_posts(
    posts: Sequence[PostRecord],
    weights: EngagementWeights = DEFAULT_WEIGHTS,
    fraction: float = 0.3,
) -> list[PostScore]:
    """
    Score every post and mark the top slice as high-performing.

    Must be called with the user's complete post set. Returns scores in
    descending order; ties keep input order.
    """
    scored = [
        (
            post.id,
            compute_engagement_score(
                post.likes_count,
                post.comments_count,
                post.shares_count,
                post.impressions_count,
                weights,
            ),
        )
        for post in posts
    ]
    scored.sort(key=lambda item: item[1], reverse=True)

    cutoff = high_performing_count(len(scored), fraction)
    return [
        PostScore(post_id=post_id, engagement_score=score, is_high_performing=rank < cutoff)
        for rank, (post_id, score) in enumerate(scored)
    ]


def apply_scores(posts: Sequence[PostRecord], scores: Sequence[PostScore]) -> list[PostRecord]:
    """Copies of `posts` carrying the computed scores and flags."""
    by_id = {score.post_id: score for score in scores}
    updated = []
    for post in posts:
        score = by_id.get(post.id)
        if score is None:
            updated.append(post)
            continue
        updated.append(post.model_copy(update={
            "engagement_score": score.engagement_score,
            "is_high_performing": score.is_high_performing,
        }))
    return updated


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _by_recency(posts: Sequence[PostRecord]) -> list[PostRecord]:
    """Newest first, undated posts last."""
    dated = [post for post in posts if post.posted_at is not None]
    undated = [post for post in posts if post.posted_at is None]
    dated.sort(key=lambda post: _aware(post.posted_at), reverse=True)
    return dated + undated


def select_candidate_posts(
    posts: Sequence[PostRecord],
    limit: int = 10,
    min_high_performing: int = 5,
) -> list[PostRecord]:
    """
    Pick the posts the style model learns from.

    With at least `min_high_performing` high performers, take the best of
    them up to `limit`. Otherwise keep all high performers and backfill with
    the most recent posts, without duplicates.
    """
    high_performing = sorted(
        (post for post in posts if post.is_high_performing),
        key=lambda post: post.engagement_score,
        reverse=True,
    )

    if len(high_performing) >= min_high_performing:
        return high_performing[:limit]

    candidates: list[PostRecord] = []
    seen: set[str] = set()
    for post in high_performing:
        if len(candidates) >= limit:
            break
        candidates.append(post)
        seen.add(post.id)

    for post in _by_recency(posts):
        if len(candidates) >= limit:
            break
        if post.id not in seen:
            candidates.append(post)
            seen.add(post.id)

    return candidates


def usable_texts(posts: Sequence[PostRecord]) -> list[str]:
    """Non-null, non-whitespace post texts."""
    return [post.text for post in posts if post.text and post.text.strip()]


def compute_confidence(texts: Sequence[Optional[str]], about: Optional[str]) -> ConfidenceLevel:
    """HIGH needs 10+ usable texts and an about section; MEDIUM needs 5+."""
    usable = [text for text in texts if text and text.strip()]
    has_about = bool(about and about.strip())
    if len(usable) >= 10 and has_about:
        return ConfidenceLevel.HIGH
    if len(usable) >= 5:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW
