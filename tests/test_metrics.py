from datetime import date, datetime

import pytest

from taskboard.metrics import (
    UserStat,
    build_dashboard,
    category_distribution,
    completed_on_time,
    effective_status,
    honor_roll,
    in_year,
    is_overdue,
    late_days,
    org_stat,
    overdue_days,
    overdue_leaderboard,
    period_advice,
    period_summary,
    sort_user_tasks,
    top_categories,
    user_stat,
    valid_users,
    year_scoped_tasks,
)
from taskboard.records import User

ALICE = User(employee_id="E1", name="Alice")


class TestTaskFacts:
    def test_overdue_example(self, make_task, today):
        task = make_task("2024-06-01", "2024-06-05")
        assert effective_status(task, today) == "overdue"
        assert is_overdue(task, today)
        assert overdue_days(task, today) == 5

    def test_due_today_is_still_pending(self, make_task, today):
        task = make_task("2024-06-01", "2024-06-10")
        assert effective_status(task, today) == "pending"
        assert overdue_days(task, today) == 0

    def test_completed_wins_over_dates(self, make_task, today):
        task = make_task("2024-05-01", "2024-05-02", status="completed")
        assert effective_status(task, today) == "completed"
        assert not is_overdue(task, today)

    def test_late_days_ignores_time_of_day(self, make_task):
        task = make_task("2024-06-01", "2024-06-05", status="completed",
                         completed_at=datetime(2024, 6, 8, 23, 59))
        assert late_days(task) == 3
        early = make_task("2024-06-01", "2024-06-05", status="completed",
                          completed_at=datetime(2024, 6, 5, 0, 1))
        assert late_days(early) == 0
        assert completed_on_time(early)

    def test_legacy_completion_is_on_time(self, make_task):
        task = make_task("2024-06-01", "2024-06-05", status="completed")
        assert late_days(task) is None
        assert completed_on_time(task)

    def test_open_task_is_never_on_time(self, make_task):
        assert not completed_on_time(make_task("2024-06-01"))


def test_valid_users_drop_rejected_and_system(people):
    ids = [u.employee_id for u in valid_users(people)]
    assert ids == ["A1", "E1", "E2"]
    assert [u.employee_id for u in valid_users(people, system_account="nobody")] == ["A1", "E1", "E2", "SYS"]


def test_year_scope_keeps_overlapping_tasks_of_valid_users(make_task, people):
    tasks = [
        make_task("2023-12-28", "2024-01-02", employee_id="E1"),
        make_task("2023-12-01", "2023-12-31", employee_id="E1"),
        make_task("2024-12-31", "2025-01-05", employee_id="E2"),
        make_task("2024-03-01", employee_id="E3"),
        make_task("2024-03-01", employee_id="GONE"),
    ]
    scoped = year_scoped_tasks(tasks, valid_users(people), 2024)
    assert [t.id for t in scoped] == ["t1", "t3"]


class TestUserStat:
    def test_on_time_rate_example(self, make_task, today):
        tasks = [
            make_task("2024-06-01", "2024-06-03", status="completed", completed_at=datetime(2024, 6, 3, 18)),
            make_task("2024-06-01", "2024-06-05", status="completed", completed_at=datetime(2024, 6, 4)),
            make_task("2024-06-08", "2024-06-10", status="completed", completed_at=datetime(2024, 6, 9)),
            make_task("2024-06-01", "2024-06-07"),
            make_task("2024-06-11", "2024-06-20"),
        ]
        stat = user_stat(ALICE, tasks, today)
        assert stat.total == 5
        assert stat.target_load == 4
        assert stat.completed_on_time == 3
        assert stat.on_time_rate == 75
        assert stat.completed == 3
        assert stat.rate == 60
        assert stat.overdue == 1
        assert stat.pending == 1

    def test_late_completion_does_not_count(self, make_task, today):
        tasks = [make_task("2024-06-01", "2024-06-02", status="completed", completed_at=datetime(2024, 6, 4))]
        stat = user_stat(ALICE, tasks, today)
        assert stat.target_load == 1
        assert stat.on_time_rate == 0
        assert stat.rate == 100

    def test_no_tasks_means_zero_rates(self, today):
        stat = user_stat(ALICE, [], today)
        assert stat.rate == 0
        assert stat.on_time_rate == 0

    def test_only_own_tasks(self, make_task, today):
        stat = user_stat(ALICE, [make_task(employee_id="E2")], today)
        assert stat.total == 0

    @pytest.mark.parametrize("done,due,future", [(0, 0, 0), (1, 0, 3), (2, 5, 1), (7, 0, 0)])
    def test_rates_stay_in_bounds(self, make_task, today, done, due, future):
        tasks = (
            [make_task("2024-06-01", status="completed", completed_at=datetime(2024, 6, 9)) for _ in range(done)]
            + [make_task("2024-06-01") for _ in range(due)]
            + [make_task("2024-07-01") for _ in range(future)]
        )
        stat = user_stat(ALICE, tasks, today)
        assert 0 <= stat.rate <= 100
        assert 0 <= stat.on_time_rate <= 100


def test_org_stat(make_task, today):
    tasks = [
        make_task("2024-06-01", status="completed"),
        make_task("2024-06-01"),
        make_task("2024-06-20"),
    ]
    org = org_stat(tasks, today)
    assert (org.total, org.completed, org.pending, org.overdue) == (3, 1, 2, 1)


def test_category_distribution_sorted_with_stable_ties(make_task):
    tasks = [
        make_task(category="Ops"),
        make_task(category="Sales"),
        make_task(category="HR"),
        make_task(category="Sales"),
        make_task(category="Ops"),
        make_task(category="Sales"),
    ]
    assert category_distribution(tasks) == [("Sales", 3), ("Ops", 2), ("HR", 1)]
    assert top_categories(tasks, limit=2) == [
        {"name": "Sales", "count": 3, "percent": 50},
        {"name": "Ops", "count": 2, "percent": 33},
    ]


class TestRankings:
    def test_honor_roll_tie_break_prefers_heavier_load(self):
        a = UserStat(employee_id="A", name="A", target_load=3, on_time_rate=100)
        b = UserStat(employee_id="B", name="B", target_load=7, on_time_rate=100)
        c = UserStat(employee_id="C", name="C", target_load=20, on_time_rate=90)
        assert honor_roll([a, b, c]) == [b]

    def test_honor_roll_empty_without_due_work(self):
        assert honor_roll([UserStat(employee_id="A", name="A", total=4)]) == []
        assert honor_roll([]) == []

    def test_overdue_leaderboard(self):
        stats = [
            UserStat(employee_id="A", name="A", total=4, overdue=1),
            UserStat(employee_id="B", name="B", total=3, overdue=0),
            UserStat(employee_id="C", name="C", total=8, overdue=6),
        ]
        board = overdue_leaderboard(stats)
        assert [row["employee_id"] for row in board] == ["C", "A"]
        assert board[0]["rate"] == 75
        assert board[1]["count"] == 1


def test_sort_user_tasks_overdue_then_pending_then_completed(make_task, today):
    done = make_task("2024-06-01", status="completed")
    late_b = make_task("2024-06-03", "2024-06-04")
    late_a = make_task("2024-06-01", "2024-06-02")
    open_ = make_task("2024-06-09", "2024-06-12")
    ordered = sort_user_tasks([done, open_, late_b, late_a], today)
    assert ordered == [late_a, late_b, open_, done]


class TestPeriodSummary:
    def test_week_summary(self, make_task, today):
        tasks = [
            make_task("2024-06-03", "2024-06-08", title="Late one"),
            make_task("2024-06-09", "2024-06-09", status="completed", category="Ops"),
            make_task("2024-06-14", "2024-06-20"),
            make_task("2024-06-16", "2024-06-18"),
        ]
        summary = period_summary(tasks, "week", today)
        assert summary["start"] == date(2024, 6, 9)
        assert summary["end"] == date(2024, 6, 15)
        assert summary["total"] == 2
        assert summary["completed"] == 1
        assert summary["overdue"] == 0
        assert summary["ongoing"] == 1
        assert summary["completion_rate"] == 50

        month = period_summary(tasks, "month", today)
        assert month["total"] == 4
        assert month["overdue"] == 1
        assert month["advice"].startswith('Overdue Alert! Please prioritize "Late one"')

    def test_empty_period(self, today):
        summary = period_summary([], "day", today)
        assert summary["total"] == 0
        assert summary["completion_rate"] == 0
        assert summary["advice"] == "No tasks scheduled for this period."

    def test_all_done(self, make_task, today):
        summary = period_summary([make_task("2024-06-10", status="completed")], "day", today)
        assert summary["advice"].startswith("All tasks completed")


def test_build_dashboard_scopes_to_valid_users_and_current_year(make_task, people, today):
    tasks = [
        make_task("2024-06-01", "2024-06-03", employee_id="E1", status="completed",
                  completed_at=datetime(2024, 6, 3), category="Ops"),
        make_task("2024-06-01", "2024-06-05", employee_id="E2"),
        make_task("2024-06-01", "2024-06-05", employee_id="E3"),
        make_task("2024-06-01", "2024-06-05", employee_id="SYS"),
        make_task("2023-06-01", "2023-06-05", employee_id="E1"),
    ]
    report = build_dashboard(people, tasks, today)
    assert report.year == 2024
    assert report.org.total == 2
    assert report.org.overdue == 1
    assert [s.employee_id for s in report.user_stats] == ["A1", "E1", "E2"]
    assert [s.employee_id for s in report.honor_roll] == ["E1"]
    assert [row["employee_id"] for row in report.overdue_leaderboard] == ["E2"]
    assert report.categories[0] in (("Ops", 1), ("General", 1))


def test_build_dashboard_leaves_out_inverted_tasks(make_task, people, today):
    tasks = [
        make_task("2024-06-05", "2024-06-03", employee_id="E1"),
        make_task("2024-06-01", "2024-06-05", employee_id="E1"),
    ]
    assert [t.id for t in year_scoped_tasks(tasks, people, 2024)] == ["t2"]
    report = build_dashboard(people, tasks, today)
    assert report.org.total == 1
    assert report.user_stats[1].total == 1


def test_in_year_includes_tasks_crossing_the_boundary(make_task):
    assert in_year(make_task("2023-12-30", "2024-01-02"), 2024)
    assert in_year(make_task("2024-12-31", "2025-01-03"), 2024)
    assert not in_year(make_task("2023-06-01", "2023-12-31"), 2024)


@pytest.mark.parametrize("total,overdue,rate,expected", [
    (0, [], 0, "No tasks"),
    (4, [], 100, "All tasks completed"),
    (4, [], 75, "Progress is steady"),
    (4, [], 50, "Recommendation"),
])
def test_period_advice(total, overdue, rate, expected):
    assert period_advice(total, overdue, rate).startswith(expected)


def test_period_advice_names_first_overdue_task(make_task):
    late = [make_task(title="Audit"), make_task(title="Report")]
    assert period_advice(2, late, 0) == (
        'Overdue Alert! Please prioritize "Audit" and 1 other items to stay on track.'
    )
