import pytest
from cachelib.file import FileSystemCache

from tempsys import create_app, db
from tempsys.models.company import Company
from tempsys.models.user import User, ROLE_COMPANY_ADMIN, ROLE_EMPLOYEE

PASSWORD = "correct horse battery staple"


@pytest.fixture()
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'tempsys.db'}",
        "SQLALCHEMY_ENGINE_OPTIONS": {},
        "SESSION_CACHELIB": FileSystemCache(cache_dir=str(tmp_path / "sessions"), threshold=500),
        "RATELIMIT_ENABLED": False,
        "WTF_CSRF_ENABLED": False,
    })

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def _create_user(app, company_name, username, role=ROLE_EMPLOYEE):
    with app.app_context():
        company = Company.query.filter_by(name=company_name).first()
        if company is None:
            company = Company(name=company_name)
            db.session.add(company)
            db.session.flush()
        user = User(company_id=company.id, username=username, role=role, email=f"{username}@example.com")
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user.id


@pytest.fixture()
def employee_id(app):
    return _create_user(app, "Acme", "alice")


@pytest.fixture()
def company_admin_id(app):
    return _create_user(app, "Acme", "boss", role=ROLE_COMPANY_ADMIN)


@pytest.fixture()
def create_user(app):
    def factory(company_name, username, role=ROLE_EMPLOYEE):
        return _create_user(app, company_name, username, role)
    return factory


@pytest.fixture()
def login(client):
    def do_login(username="alice", company="Acme", password=PASSWORD):
        return client.post("/api/auth/login", json={"company": company, "username": username, "password": password})
    return do_login
