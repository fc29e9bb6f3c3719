"""Pytest configuration and fixtures."""
import os
from concurrent.futures import Future

import pytest
from flask_jwt_extended import create_access_token

from resume_forge.clients.base import ProviderClient
from resume_forge.services.notifications import NotificationSink
from resume_forge.services.retry import RetryPolicy


RESUME_TEXT = (
    "Jane Doe - Senior Backend Engineer\n"
    "Experience: 8 years building Python services with Flask and PostgreSQL. "
    "Led a team of 5 engineers, cut API latency by 40% and migrated billing to event-driven workers. "
    "Skills: Python, SQL, AWS, Docker, Kubernetes, CI/CD."
)
JOB_DESCRIPTION = (
    "We are hiring a Senior Python Engineer to design scalable APIs, own our PostgreSQL data layer, "
    "mentor engineers and improve reliability of distributed background workers on AWS."
)

TEST_JWT_SECRET = "test-jwt-secret-key-that-is-long-enough"
TEST_BILLING_SECRET = "test-billing-secret"


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Set up test environment variables for all tests."""
    test_env_vars = {
        "SECRET_KEY": "test-secret-key-for-testing",
        "JWT_SECRET_KEY": TEST_JWT_SECRET,
        "OPENAI_API_KEY": "test-openai-key",
        "ANTHROPIC_API_KEY": "test-anthropic-key",
        "GOOGLE_API_KEY": "test-google-key",
        "FLASK_ENV": "testing",
        "DATABASE_URL": "sqlite://",
    }

    for key, value in test_env_vars.items():
        os.environ[key] = value

    from utils.config import get_app_config
    from resume_forge.clients import get_provider_client
    get_app_config.cache_clear()
    get_provider_client.cache_clear()

    yield

    # Clean up environment variables after tests
    for key in test_env_vars:
        os.environ.pop(key, None)
    get_app_config.cache_clear()


class FakeProviderClient(ProviderClient):
    """Scripted provider: each call pops the next reply (text or exception)."""

    def __init__(self, name, default_text="Generated text"):
        self.name = name
        self.default_text = default_text
        self.script = []
        self.requests = []

    def queue(self, *replies):
        self.script.extend(replies)
        return self

    def _call_api(self, request):
        self.requests.append(request)
        reply = self.script.pop(0) if self.script else self.default_text
        if isinstance(reply, Exception):
            raise reply
        return reply

    def _extract_text(self, raw):
        return raw


class FakeProviders:
    """Client factory handing out one fake client per provider name."""

    def __init__(self):
        self.clients = {}

    def __call__(self, provider):
        if provider not in self.clients:
            self.clients[provider] = FakeProviderClient(provider, default_text=f"{provider} generated text")
        return self.clients[provider]

    def __getitem__(self, provider):
        return self(provider)

    @property
    def call_count(self):
        return sum(len(client.requests) for client in self.clients.values())


class ManualExecutor:
    """Executor that queues work until ``run_pending`` is called."""

    def __init__(self):
        self.pending = []

    def submit(self, fn, *args, **kwargs):
        future = Future()
        self.pending.append((future, fn, args, kwargs))
        return future

    def run_pending(self):
        ran = 0
        while self.pending:
            future, fn, args, kwargs = self.pending.pop(0)
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(fn(*args, **kwargs))
            except Exception as exc:
                future.set_exception(exc)
            ran += 1
        return ran

    def shutdown(self, wait=True):
        self.pending.clear()


class RecordingNotifier(NotificationSink):
    def __init__(self):
        self.events = []

    def _send(self, artifact_type, artifact_id, payload):
        self.events.append((artifact_type, artifact_id, payload))

    def statuses_for(self, artifact_type, artifact_id):
        return [
            payload['status'] for kind, ident, payload in self.events
            if kind == artifact_type and ident == artifact_id
        ]


@pytest.fixture
def providers():
    return FakeProviders()


@pytest.fixture
def executor():
    return ManualExecutor()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_app(providers, executor, notifier, sleeps):
    """Build an app wired to the fakes; extra Flask config via keyword args."""
    from models import db
    from resume_forge import create_app

    created = []

    def _make(**config):
        overrides = {
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite://',
            'JWT_SECRET_KEY': TEST_JWT_SECRET,
            'BILLING_WEBHOOK_SECRET': TEST_BILLING_SECRET,
        }
        overrides.update(config)
        app, socketio = create_app(
            config_override=overrides,
            executor=executor,
            notifier=notifier,
            client_factory=providers,
            retry_policy=RetryPolicy(base_delay=1.0, jitter=False, sleep=sleeps.append),
        )
        app.extensions['test_socketio'] = socketio
        created.append(app)
        return app

    yield _make

    for app in created:
        with app.app_context():
            db.session.remove()
            db.drop_all()
            db.engine.dispose()


@pytest.fixture
def app(make_app):
    return make_app()


@pytest.fixture
def socketio(app):
    return app.extensions['test_socketio']


@pytest.fixture
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_user(app):
    """Create a user and return its id."""
    from models import db
    from models.user import User

    counter = {'n': 0}

    def _make(**fields):
        counter['n'] += 1
        fields.setdefault('email', f"user{counter['n']}@example.com")
        fields.setdefault('country_code', 'US')
        with app.app_context():
            user = User(**fields)
            db.session.add(user)
            db.session.commit()
            return user.id

    return _make


@pytest.fixture
def user_id(make_user):
    return make_user(credits_remaining=3)


@pytest.fixture
def auth_headers(app):
    """Build JWT auth headers for a user id."""
    def _headers(user_id):
        with app.app_context():
            token = create_access_token(identity=str(user_id))
        return {'Authorization': f'Bearer {token}'}
    return _headers


@pytest.fixture
def make_resume(app):
    """Create a resume for a user and return its id."""
    from models import db
    from models.resume import Resume

    def _make(user_id, **fields):
        fields.setdefault('original_content', RESUME_TEXT)
        fields.setdefault('job_description', JOB_DESCRIPTION)
        fields.setdefault('target_role', 'Senior Python Engineer')
        with app.app_context():
            resume = Resume(user_id=user_id, **fields)
            db.session.add(resume)
            db.session.commit()
            return resume.id

    return _make


@pytest.fixture
def make_cover_letter(app, make_resume):
    """Create a cover letter (and its resume when none is given)."""
    from models import db
    from models.cover_letter import CoverLetter

    def _make(user_id, resume_id=None, **fields):
        if resume_id is None:
            resume_id = make_resume(user_id)
        fields.setdefault('company_name', 'Acme Corp')
        fields.setdefault('target_role', 'Senior Python Engineer')
        fields.setdefault('job_description', JOB_DESCRIPTION)
        with app.app_context():
            cover_letter = CoverLetter(user_id=user_id, resume_id=resume_id, **fields)
            db.session.add(cover_letter)
            db.session.commit()
            return cover_letter.id

    return _make
