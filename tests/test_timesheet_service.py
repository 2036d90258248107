import pytest
from datetime import date, datetime, timezone
from uuid import uuid4

from conftest import MANAGER_ID, MEMBER_ID, OTHER_MEMBER_ID, FakeTeamsService
from teams_timesheet.config import get_settings
from teams_timesheet.models.project import Task
from teams_timesheet.models.timesheet import TimesheetEntity, TimesheetStatus
from teams_timesheet.schemas.timesheet import UserTimesheet, ProjectDetails, TimesheetDetails, RequestApprovalDTO
from teams_timesheet.services.notification_service import NotificationService
from teams_timesheet.services.timesheet_service import TimesheetService, can_transition, get_week_bounds

MARCH_START = date(2024, 3, 1)
MARCH_END = date(2024, 3, 31)
CLIENT_DATE = date(2024, 3, 15)
# Tuesday, week of Sunday 10th to Saturday 16th
TUESDAY = date(2024, 3, 12)


@pytest.fixture
def project(make_project):
    return make_project(start_date=MARCH_START, end_date=MARCH_END, tasks=("Development", "Testing"))


def user_timesheet(project, day, hours_by_task):
    return UserTimesheet(
        timesheet_date=day,
        project_details=[
            ProjectDetails(
                id=project.id,
                title=project.title,
                start_date=project.start_date,
                end_date=project.end_date,
                timesheet_details=[
                    TimesheetDetails(task_id=task.id, task_title=task.title, hours=hours)
                    for task, hours in hours_by_task
                ]
            )
        ]
    )


def rows(db, **filters):
    return db.query(TimesheetEntity).filter_by(**filters).order_by(TimesheetEntity.timesheet_date).all()


class TestFreezeRule:
    def test_on_or_after_freeze_day_only_current_month_is_open(self):
        dates = [date(2024, 2, 28), date(2024, 3, 1), date(2024, 3, 31), date(2024, 4, 1)]
        assert TimesheetService.get_not_yet_frozen_timesheet_dates(dates, date(2024, 3, 10)) == [date(2024, 3, 1), date(2024, 3, 31)]

    def test_before_freeze_day_previous_month_is_open(self):
        dates = [date(2024, 1, 31), date(2024, 2, 1), date(2024, 3, 5)]
        assert TimesheetService.get_not_yet_frozen_timesheet_dates(dates, date(2024, 3, 9)) == [date(2024, 2, 1), date(2024, 3, 5)]

    def test_january_opens_december_of_previous_year(self):
        dates = [date(2023, 11, 30), date(2023, 12, 1), date(2024, 1, 2)]
        assert TimesheetService.get_not_yet_frozen_timesheet_dates(dates, date(2024, 1, 3)) == [date(2023, 12, 1), date(2024, 1, 2)]

    def test_freeze_day_is_capped_to_month_length(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "timesheet_freeze_day_of_month", 31)
        dates = [date(2024, 1, 31), date(2024, 2, 29)]
        assert TimesheetService.get_not_yet_frozen_timesheet_dates(dates, date(2024, 2, 29)) == [date(2024, 2, 29)]


class TestClientDateValidity:
    @pytest.mark.parametrize("client_date, expected", [
        (date(2024, 3, 9), False),
        (date(2024, 3, 10), True),
        (date(2024, 3, 11), True),
        (date(2024, 3, 12), False),
    ])
    def test_noon_utc(self, client_date, expected):
        utc_now = datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc)
        assert TimesheetService.is_client_current_date_valid(client_date, utc_now) is expected

    def test_early_utc_morning_accepts_previous_day(self):
        utc_now = datetime(2024, 3, 10, 5, 0, tzinfo=timezone.utc)
        assert TimesheetService.is_client_current_date_valid(date(2024, 3, 9), utc_now)


class TestTransitions:
    def test_table(self):
        assert can_transition(TimesheetStatus.NONE, TimesheetStatus.SAVED)
        assert can_transition(TimesheetStatus.SAVED, TimesheetStatus.SUBMITTED)
        assert can_transition(TimesheetStatus.SUBMITTED, TimesheetStatus.APPROVED)
        assert can_transition(TimesheetStatus.REJECTED, TimesheetStatus.SAVED)
        assert not can_transition(TimesheetStatus.SUBMITTED, TimesheetStatus.SAVED)
        assert not can_transition(TimesheetStatus.APPROVED, TimesheetStatus.SAVED)
        assert not can_transition(TimesheetStatus.NONE, TimesheetStatus.APPROVED)
        assert not can_transition(99, TimesheetStatus.SAVED)

    def test_week_runs_sunday_to_saturday(self):
        assert get_week_bounds(TUESDAY) == (date(2024, 3, 10), date(2024, 3, 16))
        assert get_week_bounds(date(2024, 3, 10)) == (date(2024, 3, 10), date(2024, 3, 16))
        assert get_week_bounds(date(2024, 3, 16)) == (date(2024, 3, 10), date(2024, 3, 16))


class TestGetTimesheets:
    def test_calendar_of_member(self, db, project, make_timesheet):
        development = project.tasks[0]
        make_timesheet(development, TUESDAY, hours=5)

        result = TimesheetService.get_timesheets(db, TUESDAY, date(2024, 3, 13), MEMBER_ID)

        assert [day.timesheet_date for day in result] == [TUESDAY, date(2024, 3, 13)]
        details = result[0].project_details[0].timesheet_details
        assert [(d.task_title, d.hours) for d in details] == [("Development", 5), ("Testing", 0)]

    def test_hides_removed_and_other_members_tasks(self, db, make_project):
        project = make_project(
            members=((MEMBER_ID, True), (OTHER_MEMBER_ID, False)),
            start_date=MARCH_START, end_date=MARCH_END, tasks=("Development", "Old")
        )
        project.tasks[1].is_removed = True
        other_member = next(m for m in project.members if m.user_id == OTHER_MEMBER_ID)
        own_member = next(m for m in project.members if m.user_id == MEMBER_ID)
        project.tasks.extend([
            Task(title="Alex private", is_added_by_member=True, member_mapping_id=other_member.id,
                 start_date=MARCH_START, end_date=MARCH_END, is_removed=False),
            Task(title="Adele private", is_added_by_member=True, member_mapping_id=own_member.id,
                 start_date=MARCH_START, end_date=MARCH_END, is_removed=False),
        ])
        db.commit()

        result = TimesheetService.get_timesheets(db, TUESDAY, TUESDAY, MEMBER_ID)

        titles = [d.task_title for d in result[0].project_details[0].timesheet_details]
        assert "Old" not in titles
        assert "Alex private" not in titles
        assert "Adele private" in titles

    def test_no_projects_gives_empty_calendar(self, db, project):
        assert TimesheetService.get_timesheets(db, TUESDAY, TUESDAY, uuid4()) == []


class TestSaveTimesheets:
    def test_creates_saved_rows(self, db, project):
        development = project.tasks[0]

        result = TimesheetService.save_timesheets(db, [user_timesheet(project, TUESDAY, [(development, 4)])], CLIENT_DATE, MEMBER_ID)

        assert len(result) == 1
        assert result[0].hours == 4
        assert result[0].status == int(TimesheetStatus.SAVED)
        saved = rows(db, user_id=MEMBER_ID)
        assert len(saved) == 1
        assert saved[0].task_title == "Development"

    def test_zero_hours_are_not_created(self, db, project):
        development, testing = project.tasks

        result = TimesheetService.save_timesheets(
            db, [user_timesheet(project, TUESDAY, [(development, 4), (testing, 0)])], CLIENT_DATE, MEMBER_ID
        )

        assert len(result) == 1
        assert len(rows(db, user_id=MEMBER_ID)) == 1

    def test_updates_existing_row_and_resets_zero_to_none(self, db, project, make_timesheet):
        development, testing = project.tasks
        make_timesheet(development, TUESDAY, hours=4)
        make_timesheet(testing, TUESDAY, hours=2)

        TimesheetService.save_timesheets(
            db, [user_timesheet(project, TUESDAY, [(development, 6), (testing, 0)])], CLIENT_DATE, MEMBER_ID
        )

        by_task = {row.task_id: row for row in rows(db, user_id=MEMBER_ID)}
        assert by_task[development.id].hours == 6
        assert by_task[development.id].status == int(TimesheetStatus.SAVED)
        assert by_task[testing.id].hours == 0
        assert by_task[testing.id].status == int(TimesheetStatus.NONE)

    def test_repeated_task_in_one_day_keeps_one_row(self, db, project):
        development = project.tasks[0]

        result = TimesheetService.save_timesheets(
            db, [user_timesheet(project, TUESDAY, [(development, 2), (development, 3)])], CLIENT_DATE, MEMBER_ID
        )

        assert [r.hours for r in result] == [3]
        assert [(row.hours, row.status) for row in rows(db, user_id=MEMBER_ID)] == [(3, int(TimesheetStatus.SAVED))]

    def test_submitted_rows_are_not_overwritten(self, db, project, make_timesheet):
        development = project.tasks[0]
        make_timesheet(development, TUESDAY, hours=4, status=TimesheetStatus.SUBMITTED)

        result = TimesheetService.save_timesheets(db, [user_timesheet(project, TUESDAY, [(development, 7)])], CLIENT_DATE, MEMBER_ID)

        assert result is None
        row = rows(db, user_id=MEMBER_ID)[0]
        assert row.hours == 4
        assert row.status == int(TimesheetStatus.SUBMITTED)

    def test_rejected_rows_can_be_saved_again(self, db, project, make_timesheet):
        development = project.tasks[0]
        make_timesheet(development, TUESDAY, hours=4, status=TimesheetStatus.REJECTED)

        result = TimesheetService.save_timesheets(db, [user_timesheet(project, TUESDAY, [(development, 3)])], CLIENT_DATE, MEMBER_ID)

        assert result[0].status == int(TimesheetStatus.SAVED)

    def test_daily_limit(self, db, project):
        development = project.tasks[0]

        result = TimesheetService.save_timesheets(db, [user_timesheet(project, TUESDAY, [(development, 13)])], CLIENT_DATE, MEMBER_ID)

        assert result is None
        assert rows(db, user_id=MEMBER_ID) == []

    def test_weekly_limit_excludes_the_day_being_saved(self, db, project, make_timesheet):
        development = project.tasks[0]
        make_timesheet(development, date(2024, 3, 11), hours=40)
        make_timesheet(development, TUESDAY, hours=10)

        # 40 on Monday + 4 on Tuesday reaches the limit exactly
        result = TimesheetService.save_timesheets(db, [user_timesheet(project, TUESDAY, [(development, 4)])], CLIENT_DATE, MEMBER_ID)

        assert result is not None
        assert result[0].hours == 4

    def test_weekly_limit_exceeded(self, db, project, make_timesheet):
        development = project.tasks[0]
        make_timesheet(development, date(2024, 3, 11), hours=41)

        result = TimesheetService.save_timesheets(db, [user_timesheet(project, TUESDAY, [(development, 4)])], CLIENT_DATE, MEMBER_ID)

        assert result is None

    def test_weekly_limit_sees_earlier_days_of_same_request(self, db, project):
        development = project.tasks[0]
        week = [date(2024, 3, d) for d in (11, 12, 13, 14)]

        result = TimesheetService.save_timesheets(
            db, [user_timesheet(project, day, [(development, 12)]) for day in week], CLIENT_DATE, MEMBER_ID
        )

        # 3 x 12 = 36 fits, a fourth day would make 48
        assert sorted(r.timesheet_date for r in result) == week[:3]

    def test_frozen_dates_are_skipped(self, db, make_project):
        project = make_project(start_date=date(2024, 1, 1), end_date=MARCH_END)
        development = project.tasks[0]

        result = TimesheetService.save_timesheets(
            db, [user_timesheet(project, date(2024, 1, 15), [(development, 4)])], CLIENT_DATE, MEMBER_ID
        )

        assert result is None

    def test_tasks_outside_users_projects_are_skipped(self, db, project, make_project):
        foreign = make_project(members=((OTHER_MEMBER_ID, True),), start_date=MARCH_START, end_date=MARCH_END)

        result = TimesheetService.save_timesheets(
            db, [user_timesheet(foreign, TUESDAY, [(foreign.tasks[0], 4)])], CLIENT_DATE, MEMBER_ID
        )

        assert result is None
        assert rows(db, user_id=MEMBER_ID) == []


class TestSubmitTimesheets:
    def test_moves_saved_rows_to_submitted(self, db, project, make_timesheet):
        development = project.tasks[0]
        make_timesheet(development, TUESDAY, hours=4)
        make_timesheet(development, date(2024, 3, 13), hours=5)

        result = TimesheetService.submit_timesheets(db, MEMBER_ID, current_date=CLIENT_DATE)

        assert len(result) == 2
        for row in rows(db, user_id=MEMBER_ID):
            assert row.status == int(TimesheetStatus.SUBMITTED)
            assert row.submitted_on is not None

    def test_nothing_saved(self, db, project):
        assert TimesheetService.submit_timesheets(db, MEMBER_ID, current_date=CLIENT_DATE) is None

    def test_frozen_rows_stay_saved(self, db, make_project, make_timesheet):
        project = make_project(start_date=date(2024, 1, 1), end_date=MARCH_END)
        make_timesheet(project.tasks[0], date(2024, 1, 15), hours=4)

        assert TimesheetService.submit_timesheets(db, MEMBER_ID, current_date=CLIENT_DATE) is None
        assert rows(db, user_id=MEMBER_ID)[0].status == int(TimesheetStatus.SAVED)


class TestDuplicateEfforts:
    def test_copies_source_day_to_targets(self, db, project, make_timesheet):
        development, testing = project.tasks
        make_timesheet(development, TUESDAY, hours=4)
        make_timesheet(testing, TUESDAY, hours=2)

        targets = [date(2024, 3, 13), date(2024, 3, 14)]
        result = TimesheetService.duplicate_efforts(db, TUESDAY, targets, CLIENT_DATE, MEMBER_ID)

        assert len(result) == 4
        for target in targets:
            copied = {row.task_id: row.hours for row in rows(db, user_id=MEMBER_ID, timesheet_date=target)}
            assert copied == {development.id: 4, testing.id: 2}

    def test_repeated_target_date_is_copied_once(self, db, project, make_timesheet):
        development = project.tasks[0]
        make_timesheet(development, TUESDAY, hours=4)
        target = date(2024, 3, 13)

        result = TimesheetService.duplicate_efforts(db, TUESDAY, [target, target], CLIENT_DATE, MEMBER_ID)

        assert len(result) == 1
        assert [(row.hours, row.status) for row in rows(db, user_id=MEMBER_ID, timesheet_date=target)] == [(4, int(TimesheetStatus.SAVED))]

    def test_skips_targets_outside_project(self, db, make_project, make_timesheet):
        project = make_project(start_date=MARCH_START, end_date=date(2024, 3, 13))
        make_timesheet(project.tasks[0], TUESDAY, hours=4)

        result = TimesheetService.duplicate_efforts(db, TUESDAY, [date(2024, 3, 13), date(2024, 3, 14)], CLIENT_DATE, MEMBER_ID)

        assert [r.timesheet_date for r in result] == [date(2024, 3, 13)]

    def test_submitted_targets_are_kept(self, db, project, make_timesheet):
        development = project.tasks[0]
        make_timesheet(development, TUESDAY, hours=4)
        make_timesheet(development, date(2024, 3, 13), hours=8, status=TimesheetStatus.SUBMITTED)

        result = TimesheetService.duplicate_efforts(db, TUESDAY, [date(2024, 3, 13), date(2024, 3, 14)], CLIENT_DATE, MEMBER_ID)

        assert [r.timesheet_date for r in result] == [date(2024, 3, 14)]
        assert rows(db, user_id=MEMBER_ID, timesheet_date=date(2024, 3, 13))[0].hours == 8

    def test_weekly_limit_skips_target(self, db, project, make_timesheet):
        development = project.tasks[0]
        make_timesheet(development, TUESDAY, hours=10)
        make_timesheet(development, date(2024, 3, 11), hours=30)

        # 40 already in the week, 10 more would exceed 44
        result = TimesheetService.duplicate_efforts(db, TUESDAY, [date(2024, 3, 13)], CLIENT_DATE, MEMBER_ID)

        assert result is None

    def test_all_targets_frozen(self, db, project, make_timesheet):
        make_timesheet(project.tasks[0], TUESDAY, hours=4)

        assert TimesheetService.duplicate_efforts(db, TUESDAY, [date(2024, 1, 2)], CLIENT_DATE, MEMBER_ID) is None


class TestApproveOrReject:
    @pytest.fixture
    def submitted(self, project, make_timesheet):
        development = project.tasks[0]
        return [
            make_timesheet(development, date(2024, 3, 11), hours=4, status=TimesheetStatus.SUBMITTED),
            make_timesheet(development, TUESDAY, hours=5, status=TimesheetStatus.SUBMITTED),
            make_timesheet(development, date(2024, 3, 20), hours=6, status=TimesheetStatus.SUBMITTED),
        ]

    def approvals(self, timesheets, comment=None):
        return [
            RequestApprovalDTO(user_id=t.user_id, timesheet_id=t.id, manager_comments=comment, timesheet_date=[t.timesheet_date])
            for t in timesheets
        ]

    def test_only_managers_own_submitted_rows_match(self, db, submitted):
        ids = [t.id for t in submitted]

        assert len(TimesheetService.get_submitted_timesheets_by_ids(db, MANAGER_ID, ids)) == 3
        assert TimesheetService.get_submitted_timesheets_by_ids(db, OTHER_MEMBER_ID, ids) is None
        assert TimesheetService.get_submitted_timesheets_by_ids(db, MANAGER_ID, ids + [uuid4()]) is None

    def test_approve_clears_comments_and_notifies_per_run(self, db, submitted, make_conversation):
        make_conversation(MEMBER_ID)
        teams = FakeTeamsService()
        timesheets = TimesheetService.get_submitted_timesheets_by_ids(db, MANAGER_ID, [t.id for t in submitted])

        assert TimesheetService.approve_or_reject_timesheets(
            db, timesheets, self.approvals(submitted, "ignored"), TimesheetStatus.APPROVED,
            NotificationService(teams_service=teams)
        )

        for row in rows(db, user_id=MEMBER_ID):
            assert row.status == int(TimesheetStatus.APPROVED)
            assert row.manager_comments == ""
        # 11th-12th is one run, the 20th another
        assert len(teams.sent) == 2

    def test_reject_keeps_comments(self, db, submitted):
        timesheets = TimesheetService.get_submitted_timesheets_by_ids(db, MANAGER_ID, [t.id for t in submitted])

        assert TimesheetService.approve_or_reject_timesheets(
            db, timesheets, self.approvals(submitted, "Split by task"), TimesheetStatus.REJECTED
        )

        for row in rows(db, user_id=MEMBER_ID):
            assert row.status == int(TimesheetStatus.REJECTED)
            assert row.manager_comments == "Split by task"

    def test_invalid_target_status(self, db, submitted):
        with pytest.raises(ValueError):
            TimesheetService.approve_or_reject_timesheets(db, submitted, self.approvals(submitted), TimesheetStatus.SAVED)

    def test_already_approved_rows_fail(self, db, project, make_timesheet):
        approved = make_timesheet(project.tasks[0], TUESDAY, status=TimesheetStatus.APPROVED)

        assert not TimesheetService.approve_or_reject_timesheets(
            db, [approved], self.approvals([approved]), TimesheetStatus.REJECTED
        )


def test_get_timesheets_by_status(db, project, make_timesheet):
    development, testing = project.tasks
    make_timesheet(development, date(2024, 3, 13), hours=3, status=TimesheetStatus.SUBMITTED)
    make_timesheet(development, TUESDAY, hours=4, status=TimesheetStatus.SUBMITTED)
    make_timesheet(testing, TUESDAY, hours=2, status=TimesheetStatus.SUBMITTED)
    make_timesheet(testing, date(2024, 3, 14), hours=2, status=TimesheetStatus.SAVED)

    result = TimesheetService.get_timesheets_by_status(db, MEMBER_ID, TimesheetStatus.SUBMITTED)

    assert [r.timesheet_date for r in result] == [TUESDAY, date(2024, 3, 13)]
    assert result[0].total_hours == 6
    assert result[0].project_titles == ["Contoso portal"]
    assert len(result[0].submitted_timesheet_ids) == 2
