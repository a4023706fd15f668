from typing import Iterable, Optional


def trivia_base_score(correct_count: int, total_questions: int, per_correct: int = 10,
                      all_correct_bonus: int = 10) -> int:
    """Points for a trivia attempt before the cross-member speed bonus.

    ``per_correct`` per right answer, plus ``all_correct_bonus`` for a perfect
    run. The speed bonus can only be decided at finalization.
    """
    score = correct_count * per_correct
    if total_questions > 0 and correct_count == total_questions:
        score += all_correct_bonus
    return score


def apply_speed_bonus(members: Iterable, bonus: int):
    """Award ``bonus`` to the earliest submitter among the top trivia scorers.

    Members that never submitted, or scored nothing, do not qualify. Returns
    the member that received the bonus, or None.
    """
    candidates = [m for m in members if m.submitted_at is not None and m.score > 0]
    if not candidates or bonus <= 0:
        return None
    top = max(m.score for m in candidates)
    fastest = min(
        (m for m in candidates if m.score == top),
        key=lambda m: (m.submitted_at, m.joined_at),
    )
    fastest.speed_bonus = bonus
    fastest.score += bonus
    return fastest


def summarize(room_code: str, mode: str, members: list) -> dict:
    """Final standings for a room.

    ``members`` must be in join order; the sort is stable so equal scores keep
    join order.
    """
    ranked = sorted(members, key=lambda m: -m.score)
    leaderboard = [{'username': m.identity, 'score': m.score} for m in ranked]
    top = ranked[0].score if ranked else 0
    winners = [m.identity for m in ranked if m.score == top]
    return {
        'roomCode': room_code,
        'mode': mode,
        'leaderboard': leaderboard,
        'isTie': len(ranked) > 1 and len(winners) > 1,
        'winners': winners,
    }


def personalize(results: dict, member: Optional[object]) -> dict:
    """Results event payload from one member's point of view."""
    payload = {
        'roomCode': results['roomCode'],
        'leaderboard': results['leaderboard'],
        'isTie': results['isTie'],
        'yourScore': member.score if member else 0,
        'youWon': bool(member) and not results['isTie'] and member.identity in results['winners'],
    }
    if results.get('mode') == 'trivia':
        payload['yourCorrectCount'] = (member.correct_count or 0) if member else 0
        payload['yourTotalQuestions'] = (member.total_questions or 0) if member else 0
    return payload


def match_result(results: dict, identity: str) -> str:
    if results['isTie'] and identity in results['winners']:
        return 'tie'
    if identity in results['winners'] and not results['isTie']:
        return 'win'
    return 'loss'
