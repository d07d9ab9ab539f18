from backend.core import discipline


def test_toggle_rule_commits_and_undoes():
    rule = {"id": "r1", "text": "Wait for close", "streak": 2, "committed_today": False}
    committed = discipline.toggle_rule(rule)
    assert committed["committed_today"] is True
    assert committed["streak"] == 3
    undone = discipline.toggle_rule(committed)
    assert undone["committed_today"] is False
    assert undone["streak"] == 2
    assert rule["streak"] == 2  # original untouched


def test_toggle_rule_streak_floor():
    rule = {"id": "r1", "text": "x", "streak": 0, "committed_today": True}
    assert discipline.toggle_rule(rule)["streak"] == 0


def test_default_rules_are_seeded_per_user():
    rules = discipline.default_rules("u9")
    assert [r["text"] for r in rules] == discipline.DEFAULT_RULES
    assert all(r["user_id"] == "u9" and r["streak"] == 0 for r in rules)
    assert len({r["id"] for r in rules}) == 2


def test_current_level_observer_when_empty():
    assert discipline.current_level([])["name"] == "The Observer"


def test_current_level_apprentice(trade_factory):
    trades = [trade_factory(f"2024-01-{d:02d}", 10 if d <= 4 else -10) for d in range(1, 11)]
    assert discipline.current_level(trades)["name"] == "The Apprentice"


def test_current_level_win_rate_gate(trade_factory):
    trades = [trade_factory(f"2024-01-{d:02d}", 10 if d <= 3 else -10) for d in range(1, 11)]
    assert discipline.current_level(trades)["name"] == "The Observer"


def test_clean_streak_counts_from_most_recent(trade_factory):
    trades = [
        trade_factory("2024-01-01"),
        trade_factory("2024-01-02", mistakes=["Broke My Rules"]),
        trade_factory("2024-01-04"),
        trade_factory("2024-01-03"),
    ]
    assert discipline.clean_streak(trades) == 2


def test_high_rr_count_numeric_only(trade_factory):
    trades = [
        trade_factory(rr_ratio=2),
        trade_factory(rr_ratio="3"),
        trade_factory(rr_ratio="1:5"),
        trade_factory(rr_ratio=1.5),
    ]
    assert discipline.high_rr_count(trades) == 2


def test_update_challenges_only_touches_accepted(trade_factory):
    challenges = discipline.default_challenges("u1")
    challenges[1]["is_accepted"] = True
    trades = [trade_factory(f"2024-01-{d:02d}", rr_ratio=2.5) for d in range(1, 11)]
    updated = discipline.update_challenges(challenges, trades)
    assert updated[0]["current"] == 0
    assert updated[0]["is_completed"] is False
    assert updated[1]["current"] == 10
    assert updated[1]["is_completed"] is True


def test_completed_challenge_is_frozen(trade_factory):
    challenge = {**discipline.DEFAULT_CHALLENGES[0], "is_accepted": True,
                 "is_completed": True, "current": 15}
    assert discipline.update_challenges([challenge], [])[0]["current"] == 15
