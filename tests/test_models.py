import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from babo.models import AccountData, Base, UserData


@pytest.fixture
def engine():
    eng = create_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


def test_table_names():
    account = AccountData(account="x", uid=1)
    user = UserData(uid=1, account="x")
    assert account.__tablename__ == "account_data"
    assert user.__tablename__ == "user_data"
    assert (account.account, account.uid, user.uid, user.account) == ("x", 1, 1, "x")


def test_account_round_trip(engine):
    with Session(engine) as session:
        session.add(AccountData(account="test", uid=42))
        session.commit()
    with Session(engine) as session:
        row = session.scalars(select(AccountData).where(AccountData.account == "test")).one()
        assert (row.account, row.uid) == ("test", 42)


def test_user_round_trip(engine):
    with Session(engine) as session:
        session.add(UserData(uid=7, account="alice"))
        session.commit()
    with Session(engine) as session:
        row = session.get(UserData, 7)
        assert row.account == "alice"


def test_account_uid_is_unique(engine):
    with Session(engine) as session:
        session.add_all([AccountData(account="a", uid=1), AccountData(account="b", uid=1)])
        with pytest.raises(IntegrityError):
            session.commit()


def test_user_account_is_unique(engine):
    with Session(engine) as session:
        session.add_all([UserData(uid=1, account="same"), UserData(uid=2, account="same")])
        with pytest.raises(IntegrityError):
            session.commit()