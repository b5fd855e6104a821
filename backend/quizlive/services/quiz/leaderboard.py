"""Ranking shared by every leaderboard view.

Order is score descending, then join time ascending, then id, so equal
scores always rank the same way no matter which view asks.
"""

from typing import List, Optional

from quizlive.models import Participant, normalize_code


def ranked_participants(session_code: str, limit: Optional[int] = None) -> List[Participant]:
    query = Participant.query.filter_by(session_code=normalize_code(session_code)).order_by(
        Participant.total_score.desc(),
        Participant.joined_at.asc(),
        Participant.id.asc(),
    )
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def rank_entries(session_code: str, limit: Optional[int] = None) -> List[dict]:
    """Compact rows for socket views: ``{id, rank, name, score}``."""
    return [
        {'id': p.id, 'rank': idx + 1, 'name': p.name, 'score': p.total_score}
        for idx, p in enumerate(ranked_participants(session_code, limit))
    ]


def leaderboard_rows(session_code: str, limit: Optional[int] = None) -> List[dict]:
    """Rows for the REST leaderboard."""
    return [
        {
            'id': p.id,
            'rank': idx + 1,
            'name': p.name,
            'uniqueCode': p.unique_code,
            'totalScore': p.total_score,
            'joinedAt': p.joined_at.isoformat() if p.joined_at else None,
        }
        for idx, p in enumerate(ranked_participants(session_code, limit))
    ]
