"""
create_owner 脚本测试
"""
import create_owner
from app.models.ontology import Role, Staff
from app.security.auth import verify_password


class TestEnsureOwner:
    """ensure_owner()"""

    def test_creates_owner_with_hashed_password(self, db_session):
        owner, created = create_owner.ensure_owner(db_session, " Boss@Hotel.com ", "s3cret!", "Big Boss")

        assert created
        assert owner.role == Role.OWNER
        assert owner.email == "boss@hotel.com"
        assert owner.password_hash != "s3cret!"
        assert verify_password("s3cret!", owner.password_hash)

    def test_existing_owner_is_kept(self, db_session, owner):
        again, created = create_owner.ensure_owner(db_session, "other@hotel.com", "pw123456")

        assert not created
        assert again.id == owner.id
        assert db_session.query(Staff).filter(Staff.role == Role.OWNER).count() == 1


class TestMain:
    """命令行入口"""

    def test_requires_credentials(self, monkeypatch, capsys):
        monkeypatch.delenv("OWNER_EMAIL", raising=False)
        monkeypatch.delenv("OWNER_PASSWORD", raising=False)

        assert create_owner.main() == 1
        assert "OWNER_EMAIL" in capsys.readouterr().out

    def test_reads_environment(self, monkeypatch, db_session, capsys):
        monkeypatch.setenv("OWNER_EMAIL", "env-owner@hotel.com")
        monkeypatch.setenv("OWNER_PASSWORD", "fromenv123")
        monkeypatch.setenv("OWNER_NAME", "Env Owner")
        monkeypatch.setattr(create_owner, "init_db", lambda: None)
        monkeypatch.setattr(create_owner, "SessionLocal", lambda: db_session)

        assert create_owner.main() == 0
        assert "env-owner@hotel.com" in capsys.readouterr().out

        owner = db_session.query(Staff).filter(Staff.role == Role.OWNER).one()
        assert owner.fullname == "Env Owner"
        assert verify_password("fromenv123", owner.password_hash)
