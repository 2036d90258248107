import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from uuid import UUID, uuid4

from teams_timesheet.database import Base, get_db
from teams_timesheet.models.conversation import Conversation
from teams_timesheet.models.project import Project, Member, Task
from teams_timesheet.models.timesheet import TimesheetEntity, TimesheetStatus
from teams_timesheet.schemas.user import UserDTO
from teams_timesheet.auth.security import CurrentUser, get_current_user, get_graph_service, verify_bot_token
from teams_timesheet.auth.policies import clear_policy_caches
from teams_timesheet.services.user_service import clear_reportees_cache
from teams_timesheet.services.notification_service import NotificationService
from teams_timesheet.utils.card_builder import clear_card_cache
from teams_timesheet.routers import bot_router, timesheets_router
from teams_timesheet.utils.timezone import get_utc_today

MANAGER_ID = UUID("11111111-1111-1111-1111-111111111111")
MEMBER_ID = UUID("22222222-2222-2222-2222-222222222222")
OTHER_MEMBER_ID = UUID("33333333-3333-3333-3333-333333333333")
OUTSIDER_ID = UUID("44444444-4444-4444-4444-444444444444")


class FakeGraphService:
    def __init__(self, reportees=None, manager=None, users=None):
        self.reportees = reportees or []
        self.manager = manager
        self.users = users or {}
        self.reportee_calls = 0

    def get_my_reportees(self, search=None):
        self.reportee_calls += 1
        search = (search or "").lower()
        return [r for r in self.reportees if not search or search in (r.display_name or "").lower()]

    def get_manager(self):
        return self.manager

    def get_users(self, user_ids):
        return {UUID(str(i)): self.users[UUID(str(i))] for i in user_ids if UUID(str(i)) in self.users}


class FakeTeamsService:
    def __init__(self, succeed=True):
        self.succeed = succeed
        self.sent = []

    def send_card(self, service_url, conversation_id, attachment):
        self.sent.append((service_url, conversation_id, attachment))
        return self.succeed


def user_dto(user_id, name):
    return UserDTO(id=str(user_id), display_name=name, user_principal_name=f"{name.lower()}@contoso.com", mail=f"{name.lower()}@contoso.com")


@pytest.fixture(autouse=True)
def clear_caches():
    clear_policy_caches()
    clear_reportees_cache()
    clear_card_cache()
    yield
    clear_policy_caches()
    clear_reportees_cache()
    clear_card_cache()


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def today():
    return get_utc_today()


@pytest.fixture
def make_project(db, today):
    """Create a project with members [(user_id, is_billable)] and task titles."""
    def _make(
        created_by=MANAGER_ID,
        members=((MEMBER_ID, True),),
        tasks=("Development",),
        start_date=None,
        end_date=None,
        billable_hours=100,
        non_billable_hours=20,
        title="Contoso portal"
    ):
        start_date = start_date or today - timedelta(days=60)
        end_date = end_date or today + timedelta(days=60)
        project = Project(
            title=title,
            client_name="Contoso",
            billable_hours=billable_hours,
            non_billable_hours=non_billable_hours,
            start_date=start_date,
            end_date=end_date,
            created_by=created_by,
            created_on=datetime.utcnow()
        )
        project.members = [Member(user_id=user_id, is_billable=billable, is_removed=False) for user_id, billable in members]
        project.tasks = [
            Task(title=task_title, is_removed=False, is_added_by_member=False, start_date=start_date, end_date=end_date)
            for task_title in tasks
        ]
        db.add(project)
        db.commit()
        return project
    return _make


@pytest.fixture
def make_timesheet(db):
    def _make(task, timesheet_date, hours=4, status=TimesheetStatus.SAVED, user_id=MEMBER_ID, **kwargs):
        timesheet = TimesheetEntity(
            task_id=task.id,
            task_title=task.title,
            user_id=user_id,
            timesheet_date=timesheet_date,
            hours=hours,
            status=int(status),
            **kwargs
        )
        db.add(timesheet)
        db.commit()
        return timesheet
    return _make


@pytest.fixture
def make_conversation(db):
    def _make(user_id, conversation_id=None, service_url="https://smba.trafficmanager.net/emea/"):
        conversation = Conversation(
            user_id=user_id,
            conversation_id=conversation_id or f"a:{uuid4().hex}",
            service_url=service_url,
            bot_installed_on=datetime.utcnow()
        )
        db.add(conversation)
        db.commit()
        return conversation
    return _make


@pytest.fixture
def graph():
    return FakeGraphService(
        reportees=[user_dto(MEMBER_ID, "Adele"), user_dto(OTHER_MEMBER_ID, "Alex")],
        manager=user_dto(MANAGER_ID, "Megan"),
        users={
            MEMBER_ID: user_dto(MEMBER_ID, "Adele"),
            OTHER_MEMBER_ID: user_dto(OTHER_MEMBER_ID, "Alex"),
        }
    )


@pytest.fixture
def teams_service():
    return FakeTeamsService()


class AuthState:
    def __init__(self, user_id):
        self.user_id = user_id


@pytest.fixture
def auth():
    return AuthState(MANAGER_ID)


@pytest.fixture
def client(db, graph, teams_service, auth):
    from teams_timesheet.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: CurrentUser(user_id=auth.user_id, token="test-token")
    app.dependency_overrides[get_graph_service] = lambda: graph
    app.dependency_overrides[verify_bot_token] = lambda: {}
    app.dependency_overrides[bot_router.get_teams_service] = lambda: teams_service
    app.dependency_overrides[timesheets_router.get_notification_service] = lambda: NotificationService(teams_service=teams_service)

    # No context manager, so the lifespan (init_db and the scheduler) does not run
    yield TestClient(app)

    app.dependency_overrides.clear()

