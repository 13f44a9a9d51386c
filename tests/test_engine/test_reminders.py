"""Tests for stage reminder rules.

    - Rule table covers every stage
    - Weekly rules ignore follow-up history
    - Interval rules count from last follow-up, stage entry, or creation
    - Next-due dates for each rule kind
"""

from dataclasses import replace
from datetime import date, datetime

import pytest

from mortgage_crm.db.models import Deal, Stage
from mortgage_crm.engine.reminders import (
    AUTO_AGING_NOTE,
    REMINDER_RULES,
    IntervalRule,
    NoReminder,
    WeeklyRule,
    anchor_date,
    describe_rule,
    get_rule,
    is_due_today,
    next_due_date,
)

# January 2025: 1=Wed 2=Thu 5=Sun 6=Mon 8=Wed 9=Thu
WEDNESDAY = date(2025, 1, 8)
THURSDAY = date(2025, 1, 9)
MONDAY = date(2025, 1, 6)
SUNDAY = date(2025, 1, 5)


class TestRuleTable:
    """Test the per-stage rule configuration."""

    def test_every_stage_has_a_rule(self):
        """No stage is left without a rule."""
        assert set(REMINDER_RULES) == set(Stage)

    def test_rule_kinds(self):
        """Active leads weekly, old leads and pre-approvals monthly, deals none."""
        assert get_rule(Stage.ACTIVE_LEAD) == WeeklyRule(frozenset({1, 4}), "Follow up every Mon & Thu")
        assert get_rule(Stage.OLD_LEAD) == IntervalRule(30, "Follow up every 30 days")
        assert get_rule(Stage.PRE_APPROVAL) == IntervalRule(30, "Follow up every 30 days")
        assert isinstance(get_rule(Stage.ACTIVE_DEAL), NoReminder)
        assert isinstance(get_rule(Stage.CLOSED_DEAL), NoReminder)

    def test_get_rule_accepts_key(self):
        """String keys resolve too."""
        assert get_rule("old_lead") is REMINDER_RULES[Stage.OLD_LEAD]

    def test_describe_active_lead_mentions_aging(self):
        """Active lead description includes the aging note."""
        assert AUTO_AGING_NOTE in describe_rule(Stage.ACTIVE_LEAD)
        assert describe_rule(Stage.CLOSED_DEAL) == "No scheduled follow-up"


class TestAnchorDate:
    """Test interval anchor priority."""

    def test_last_follow_up_wins(self, sample_old_lead: Deal):
        """lastFollowUp beats stageEnteredAt."""
        deal = replace(sample_old_lead, last_follow_up=date(2025, 1, 15))
        assert anchor_date(deal) == date(2025, 1, 15)

    def test_stage_entered_next(self, sample_old_lead: Deal):
        """Without follow-up, stage entry is the anchor."""
        assert anchor_date(sample_old_lead) == date(2025, 1, 1)

    def test_created_last(self, sample_old_lead: Deal):
        """Without either, creation is the anchor."""
        deal = replace(sample_old_lead)
        object.__setattr__(deal, "stage_entered_at", None)
        assert deal.stage_entered_at is None
        assert anchor_date(deal) == date(2024, 11, 15)


class TestWeeklyRule:
    """Test weekly (active lead) reminders."""

    @pytest.mark.parametrize("today", [MONDAY, THURSDAY])
    def test_due_on_configured_days(self, sample_deal: Deal, today: date):
        """Due on Monday and Thursday."""
        assert is_due_today(sample_deal, today) is True

    @pytest.mark.parametrize("today", [SUNDAY, WEDNESDAY, date(2025, 1, 10), date(2025, 1, 11)])
    def test_not_due_other_days(self, sample_deal: Deal, today: date):
        """Not due on other weekdays."""
        assert is_due_today(sample_deal, today) is False

    def test_follow_up_does_not_matter(self, sample_deal: Deal):
        """Weekly rules ignore lastFollowUp."""
        deal = replace(sample_deal, last_follow_up=MONDAY)
        assert is_due_today(deal, MONDAY) is True

    def test_next_due_wednesday_is_thursday(self, sample_deal: Deal):
        """Wednesday's next due is the next day."""
        assert next_due_date(sample_deal, WEDNESDAY) == THURSDAY

    def test_next_due_thursday_is_monday(self, sample_deal: Deal):
        """A due day looks ahead to the next occurrence."""
        assert next_due_date(sample_deal, THURSDAY) == date(2025, 1, 13)

    def test_next_due_sunday_is_monday(self, sample_deal: Deal):
        """Sunday looks one day ahead."""
        assert next_due_date(sample_deal, SUNDAY) == MONDAY

    def test_next_due_monday_is_thursday(self, sample_deal: Deal):
        """Monday looks ahead to Thursday."""
        assert next_due_date(sample_deal, MONDAY) == THURSDAY


class TestIntervalRule:
    """Test interval (old lead, pre-approval) reminders."""

    def test_due_at_thirty_days(self, sample_old_lead: Deal):
        """Stage entered 2025-01-01 is due on 2025-01-31."""
        assert is_due_today(sample_old_lead, date(2025, 1, 31)) is True

    def test_not_due_at_nineteen_days(self, sample_old_lead: Deal):
        """Nineteen days in, not due."""
        assert is_due_today(sample_old_lead, date(2025, 1, 20)) is False

    def test_not_due_day_before(self, sample_old_lead: Deal):
        """Twenty-nine days in, not due."""
        assert is_due_today(sample_old_lead, date(2025, 1, 30)) is False

    def test_stays_due_when_overdue(self, sample_old_lead: Deal):
        """Past the interval it remains due."""
        assert is_due_today(sample_old_lead, date(2025, 3, 1)) is True

    def test_follow_up_resets_anchor(self, sample_old_lead: Deal):
        """After a follow-up, not due until the interval passes again."""
        deal = replace(sample_old_lead, last_follow_up=date(2025, 1, 31))
        assert is_due_today(deal, date(2025, 1, 31)) is False
        assert is_due_today(deal, date(2025, 3, 1)) is False
        assert is_due_today(deal, date(2025, 3, 2)) is True

    def test_pre_approval_uses_interval(self, sample_old_lead: Deal):
        """Pre-approvals follow the same 30-day rule."""
        deal = replace(sample_old_lead, stage=Stage.PRE_APPROVAL)
        assert is_due_today(deal, date(2025, 1, 31)) is True

    def test_next_due_is_anchor_plus_interval(self, sample_old_lead: Deal):
        """Next due counts from the anchor."""
        assert next_due_date(sample_old_lead, date(2025, 1, 10)) == date(2025, 1, 31)

    def test_next_due_after_follow_up(self, sample_old_lead: Deal):
        """Follow-up moves the next due date."""
        deal = replace(sample_old_lead, last_follow_up=date(2025, 2, 3))
        assert next_due_date(deal, date(2025, 2, 3)) == date(2025, 3, 5)


class TestNoReminder:
    """Test stages without reminders."""

    @pytest.mark.parametrize("stage", [Stage.ACTIVE_DEAL, Stage.CLOSED_DEAL])
    def test_never_due(self, sample_active_deal: Deal, stage: Stage):
        """Deals never come due, however old."""
        deal = replace(sample_active_deal, stage=stage)
        assert is_due_today(deal, date(2030, 1, 1)) is False
        assert next_due_date(deal, date(2030, 1, 1)) is None


class TestPurity:
    """Queries do not change the deal."""

    def test_repeat_calls_same_answer(self, sample_old_lead: Deal):
        """Calling twice yields the same result and leaves the deal intact."""
        snapshot = replace(sample_old_lead)
        first = (is_due_today(sample_old_lead, date(2025, 1, 31)), next_due_date(sample_old_lead, date(2025, 1, 31)))
        second = (is_due_today(sample_old_lead, date(2025, 1, 31)), next_due_date(sample_old_lead, date(2025, 1, 31)))
        assert first == second
        assert sample_old_lead == snapshot
