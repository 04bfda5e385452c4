import mongomock
import pytest
from fastapi.testclient import TestClient

from database import Database
from identity import JwtIdentityVerifier
from main import create_app
from schemas import User
from settings import Settings

SECRET = "test-secret"

BUYER = "buyer@example.com"
OTHER = "other@example.com"
CHEF = "chef@example.com"
ADMIN = "admin@example.com"


class FakePaymentGateway:
    def __init__(self):
        self.calls = []

    def create_checkout_session(self, **kwargs):
        self.calls.append(kwargs)
        return "https://checkout.example.com/session/cs_test_123"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        AUTH_PROVIDER="jwt",
        JWT_SECRET_KEY=SECRET,
        CLIENT_URL="http://client.example.com",
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def db():
    database = Database(name="localBazarChefTest", client=mongomock.MongoClient())
    database.connect()
    yield database
    database.close()


@pytest.fixture
def verifier():
    return JwtIdentityVerifier(SECRET)


@pytest.fixture
def payments():
    return FakePaymentGateway()


@pytest.fixture
def client(settings, db, verifier, payments):
    app = create_app(settings=settings, database=db, verifier=verifier, payments=payments)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth(verifier):
    def _auth(email):
        return {"Authorization": f"Bearer {verifier.create_access_token(email)}"}
    return _auth


@pytest.fixture
def make_user(db):
    def _make_user(email, role="user", status="active"):
        doc = User(email=email, role=role, status=status).model_dump()
        db.users.insert_one(doc)
        return doc
    return _make_user


@pytest.fixture
def meal_id(db):
    res = db.meals.insert_one({
        "chefEmail": CHEF,
        "chefName": "Chef Rahim",
        "chefId": "chef-1",
        "foodName": "Beef Bhuna",
        "price": 12.5,
        "ingredients": ["beef", "onion"],
        "rating": 0,
    })
    return str(res.inserted_id)


@pytest.fixture
def order_payload():
    return {
        "chefId": "chef-1",
        "mealId": "meal-1",
        "mealName": "Beef Bhuna",
        "price": 12.5,
        "quantity": 2,
        "userAddress": "12 Lake Road",
    }
