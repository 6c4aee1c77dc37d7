import pytest

from fakes import FakeClock, FakeSupabase
from medcrm.database import CRMDatabase
from medcrm.preferences import PreferenceStore
from medcrm.remote import ResilientCaller
from medcrm.session import SessionKeeper
from medcrm.store import MutationCoordinator


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def fake_client(clock):
    client = FakeSupabase(clock)
    client.auth.sign_in_as()
    return client


@pytest.fixture()
def preferences():
    return PreferenceStore({})


@pytest.fixture()
def keeper(fake_client, clock, preferences):
    return SessionKeeper(fake_client, preferences=preferences, clock=clock, wall_clock=clock)


@pytest.fixture()
def sleeps():
    return []


@pytest.fixture()
def caller(keeper, sleeps):
    return ResilientCaller(keeper, sleep=sleeps.append)


@pytest.fixture()
def db(fake_client, caller):
    return CRMDatabase(fake_client, caller)


@pytest.fixture()
def crm(db):
    return MutationCoordinator(db)
