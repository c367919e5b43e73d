"""
Shared fixtures: an application backed by a throwaway SQLite file, test
clients for anonymous, regular and admin users, and row factories.

Factories return primary keys rather than instances so tests never hold
objects bound to a session that has already been removed.
"""

import smtplib
from datetime import date, timedelta

import pytest

from hopeconnect import create_app
from hopeconnect.cli import create_admin
from hopeconnect.config import TestingConfig
from hopeconnect.database import db
from hopeconnect.models import BlogPost, Comment, Event, Testimony, User, UserRole


@pytest.fixture
def app(tmp_path):
    class Config(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'test.db'}"
        UPLOAD_FOLDER = str(tmp_path / 'uploads')

    app = create_app(Config)
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


def login(client, email, password):
    return client.post('/auth/login', data={'email': email, 'password': password})


@pytest.fixture
def admin_client(app):
    with app.app_context():
        create_admin('admin@hopeconnect.org', 'password', 'Site Admin')
    client = app.test_client()
    login(client, 'admin@hopeconnect.org', 'password')
    return client


@pytest.fixture
def user_client(app):
    with app.app_context():
        user = User(email='member@example.com')
        user.set_password('password')
        user.roles.append(UserRole(role='user'))
        db.session.add(user)
        db.session.commit()
    client = app.test_client()
    login(client, 'member@example.com', 'password')
    return client


@pytest.fixture
def make_event(app):
    def factory(**overrides):
        fields = dict(title='Awareness Walk', description='Annual walk', date=date.today() + timedelta(days=7),
                      time='9:00 AM', location='City Park', type='awareness', capacity=10, registered=0)
        fields.update(overrides)
        with app.app_context():
            event = Event(**fields)
            db.session.add(event)
            db.session.commit()
            return event.id
    return factory


@pytest.fixture
def make_post(app):
    def factory(**overrides):
        fields = dict(title='Early Detection Matters', excerpt='Why screening saves lives',
                      content='Full content here', category='medical-insights',
                      author='Dr. Chen', status='published')
        fields.update(overrides)
        with app.app_context():
            post = BlogPost(**fields)
            db.session.add(post)
            db.session.commit()
            return post.id
    return factory


@pytest.fixture
def make_comment(app):
    def factory(post_id, **overrides):
        fields = dict(author='Mary', content='Very informative', status='pending')
        fields.update(overrides)
        with app.app_context():
            comment = Comment(blog_post_id=post_id, **fields)
            db.session.add(comment)
            db.session.commit()
            return comment.id
    return factory


@pytest.fixture
def make_testimony(app):
    def factory(**overrides):
        fields = dict(name='Grace', story='I am a survivor', category='survivor',
                      cancer_type='Breast Cancer', status='approved')
        fields.update(overrides)
        with app.app_context():
            entry = Testimony(**fields)
            db.session.add(entry)
            db.session.commit()
            return entry.id
    return factory


class FakeSMTP:
    """Records messages instead of talking to a mail server."""

    sent = []
    logins = []
    fail_with = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        if FakeSMTP.fail_with is not None:
            raise FakeSMTP.fail_with
        return self

    def __exit__(self, *exc_info):
        return False

    def login(self, username, password):
        FakeSMTP.logins.append((username, password))

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture
def outbox(app, monkeypatch):
    FakeSMTP.sent = []
    FakeSMTP.logins = []
    FakeSMTP.fail_with = None
    monkeypatch.setattr(smtplib, 'SMTP_SSL', FakeSMTP)
    monkeypatch.setattr(smtplib, 'SMTP', FakeSMTP)
    app.config.update(MAIL_SUPPRESS_SEND=False, MAIL_PASSWORD='re_test_key')
    return FakeSMTP
