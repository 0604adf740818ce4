"""
Scoring rules for the pick'em application

Pure functions over plain records: deciding winners, resolving picks and
turning a pool's picks into standings rows. Storage access lives in
``pickem.services.scoring_service``; nothing here touches a repository.
"""

FINAL_STATUSES = frozenset({"STATUS_FINAL", "STATUS_CLOSED", "Final"})

ALIVE = "alive"
ELIMINATED = "eliminated"


def is_final_status(status):
    """True when the feed status marks a finished game"""
    return status in FINAL_STATUSES


def determine_winner(game):
    """
    Winning team id of a scheduled game.

    Returns ``None`` while the game is not final, when a score is missing,
    and for a tied final score.
    """
    if not is_final_status(game.get("status")):
        return None

    home_score = game.get("home_score")
    away_score = game.get("away_score")
    if home_score is None or away_score is None:
        return None

    if home_score > away_score:
        return game["home_team_id"]
    if away_score > home_score:
        return game["away_team_id"]
    return None


def evaluate_pick(pick, game):
    """Correctness flag a pick should carry given its game's current state"""
    winner = determine_winner(game)
    if winner is None:
        return None
    return pick["team_id"] == winner


def pick_percentage(correct, total):
    if not total:
        return 0.0
    return round(correct / total * 100, 2)


def summarize_picks(picks):
    """Counts of total, correct, incorrect and pending picks"""
    correct = sum(1 for pick in picks if pick.get("is_correct") is True)
    incorrect = sum(1 for pick in picks if pick.get("is_correct") is False)
    total = len(picks)
    return {
        "total_picks": total,
        "correct_picks": correct,
        "incorrect_picks": incorrect,
        "pending_picks": total - correct - incorrect,
        "pick_percentage": pick_percentage(correct, total),
    }


def survivor_state(picks, evaluation_started):
    """
    Survivor status for one participant.

    A participant is eliminated by an incorrect pick, but only once some
    game in the evaluation window is final; until then everyone is alive.

    Returns:
        tuple: (status, elimination_week)
    """
    if not evaluation_started:
        return ALIVE, None

    losing_weeks = [pick["week"] for pick in picks if pick.get("is_correct") is False]
    if not losing_weeks:
        return ALIVE, None
    return ELIMINATED, min(losing_weeks)


def team_used_in_other_week(picks, team_id, week):
    """
    True when ``team_id`` already appears in one of ``picks`` for a week
    other than ``week``. Pending, correct and incorrect picks all count.
    """
    return any(pick["team_id"] == team_id and pick["week"] != week for pick in picks)


def used_teams(picks):
    """Team ids consumed by a participant's survivor picks, in pick order"""
    seen = []
    for pick in sorted(picks, key=lambda p: p["week"]):
        if pick["team_id"] not in seen:
            seen.append(pick["team_id"])
    return seen


def aggregate_standings(participants, users, picks, survivor=False, evaluation_started=False):
    """
    Build one standings row per participant.

    Args:
        participants: participant records, in insertion order
        users: mapping of user id to user record
        picks: every pick in the evaluation window
        survivor: add ``status`` and ``elimination_week`` columns
        evaluation_started: at least one game in the window is final

    Returns:
        list: rows sorted by correct picks, then pick percentage
    """
    picks_by_user = {}
    for pick in picks:
        picks_by_user.setdefault(pick["user_id"], []).append(pick)

    rows = []
    for participant in participants:
        user = users.get(participant["user_id"]) or {}
        user_picks = picks_by_user.get(participant["user_id"], [])
        row = {
            "user_id": participant["user_id"],
            "first_name": user.get("first_name"),
            "last_name": user.get("last_name"),
        }
        row.update(summarize_picks(user_picks))
        if survivor:
            status, elimination_week = survivor_state(user_picks, evaluation_started)
            row["status"] = status
            row["elimination_week"] = elimination_week
        rows.append(row)

    return sort_standings(rows)


def sort_standings(rows):
    # sorted() is stable, so equal rows keep participant order
    return sorted(rows, key=lambda row: (-row["correct_picks"], -row["pick_percentage"]))


def sort_survivor_standings(rows):
    """Alive players first, best record first; then the most recently eliminated"""
    alive = [row for row in rows if row["status"] == ALIVE]
    eliminated = [row for row in rows if row["status"] == ELIMINATED]
    alive.sort(key=lambda row: (-row["correct_picks"], -row["total_picks"]))
    eliminated.sort(key=lambda row: -(row["elimination_week"] or 0))
    return alive + eliminated


def rank_standings(rows):
    """
    Assign competition ranks ("1, 2, 2, 4") to sorted standings rows.
    Rows with equal correct picks and percentage share a rank.
    """
    ranked = []
    previous = None
    rank = 0
    for position, row in enumerate(rows, start=1):
        key = (row["correct_picks"], row["pick_percentage"])
        if key != previous:
            rank = position
            previous = key
        ranked.append(dict(row, rank=rank))
    return ranked


def latest_tiebreaker(picks):
    """Most recently written non-null tiebreaker among ``picks``"""
    candidates = [pick for pick in picks if pick.get("tiebreaker") is not None]
    if not candidates:
        return None
    latest = max(candidates, key=lambda p: (p.get("updated_at") or p.get("created_at"), p["id"]))
    return latest["tiebreaker"]


def team_pick_stats(picks, teams):
    """
    Share of picks per team, most picked first.

    Args:
        picks: pick records
        teams: mapping of team id to team record
    """
    counts = {}
    for pick in picks:
        counts[pick["team_id"]] = counts.get(pick["team_id"], 0) + 1

    total = len(picks)
    stats = []
    for team_id, pick_count in counts.items():
        team = teams.get(team_id) or {}
        stats.append(
            {
                "team_id": team_id,
                "team_code": team.get("team_code"),
                "team_name": team.get("team_name"),
                "pick_count": pick_count,
                "percentage": pick_percentage(pick_count, total),
            }
        )
    return sorted(stats, key=lambda row: (-row["pick_count"], row["team_code"] or ""))
