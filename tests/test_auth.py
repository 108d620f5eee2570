import time

from medbook.core.config import settings
from medbook.models.user import User

from .conftest import TEST_PASSWORD

# Test data
test_user_data = {
    "name": "Test User",
    "email": "Test@Example.com",
    "password": "TestPassword123",
    "role": "patient",
    "phone": "555-0199"
}

test_login_data = {
    "email": "test@example.com",
    "password": "TestPassword123"
}

def login_tokens(client):
    client.post("/api/auth/register", json=test_user_data)
    return client.post("/api/auth/login", json=test_login_data).json()["data"]

class TestAuthentication:

    def test_register_user(self, client):
        """Test user registration."""
        response = client.post("/api/auth/register", json=test_user_data)
        assert response.status_code == 201

        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["email"] == "test@example.com"
        assert data["role"] == test_user_data["role"]
        assert data["name"] == "Test User"
        assert "password" not in data
        assert "password_hash" not in data

    def test_register_duplicate_email(self, client):
        """Test registration with duplicate email."""
        client.post("/api/auth/register", json=test_user_data)

        response = client.post("/api/auth/register", json=test_user_data)
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "User already exists"}

    def test_register_invalid_password(self, client):
        """Test registration with invalid password."""
        invalid_data = test_user_data.copy()
        invalid_data["password"] = "weak"

        response = client.post("/api/auth/register", json=invalid_data)
        assert response.status_code == 400
        assert "password" in response.json()["message"]

    def test_register_invalid_email(self, client):
        invalid_data = test_user_data.copy()
        invalid_data["email"] = "not-an-email"

        response = client.post("/api/auth/register", json=invalid_data)
        assert response.status_code == 400
        assert "valid email address" in response.json()["message"]

    def test_register_rejects_long_malformed_email_quickly(self, client):
        invalid_data = test_user_data.copy()
        invalid_data["email"] = "a" * 5000 + "!"

        started = time.perf_counter()
        response = client.post("/api/auth/register", json=invalid_data)

        assert response.status_code == 400
        assert time.perf_counter() - started < 2

    def test_register_is_rate_limited(self, client, redis_stub):
        for attempt in range(settings.RATE_LIMIT_PER_HOUR):
            payload = dict(test_user_data, email=f"user{attempt}@example.com")
            assert client.post("/api/auth/register", json=payload).status_code == 201

        response = client.post("/api/auth/register", json=dict(test_user_data, email="late@example.com"))
        assert response.status_code == 429
        assert response.json()["success"] is False

    def test_login_success(self, client):
        """Test successful login."""
        data = login_tokens(client)

        assert "access_token" in data
        assert "refresh_token" in data
        assert data["token_type"] == "bearer"
        assert data["user"]["email"] == "test@example.com"

    def test_login_invalid_credentials(self, client):
        """Test login with invalid credentials."""
        invalid_login = {
            "email": "nonexistent@example.com",
            "password": "wrongpassword"
        }

        response = client.post("/api/auth/login", json=invalid_login)
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"

    def test_login_wrong_password(self, client):
        """Test login with wrong password."""
        client.post("/api/auth/register", json=test_user_data)

        wrong_login = test_login_data.copy()
        wrong_login["password"] = "wrongpassword"

        response = client.post("/api/auth/login", json=wrong_login)
        assert response.status_code == 401

    def test_repeated_failures_lock_the_account(self, client, db_session, patient):
        wrong_login = {"email": patient.email, "password": "wrongpassword"}
        for _ in range(settings.MAX_FAILED_LOGINS):
            assert client.post("/api/auth/login", json=wrong_login).status_code == 401

        response = client.post("/api/auth/login", json={"email": patient.email, "password": TEST_PASSWORD})
        assert response.status_code == 423

        db_session.expire_all()
        assert db_session.get(User, patient.id).locked_until is not None

    def test_get_current_user(self, client):
        """Test getting current user info."""
        token = login_tokens(client)["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        for path in ("/api/auth/user-profile", "/api/auth/me"):
            response = client.get(path, headers=headers)
            assert response.status_code == 200
            assert response.json()["data"]["email"] == "test@example.com"

    def test_get_current_user_invalid_token(self, client):
        """Test get current user with invalid token."""
        headers = {"Authorization": "Bearer invalid_token"}

        response = client.get("/api/auth/user-profile", headers=headers)
        assert response.status_code == 401

    def test_refresh_token_cannot_authenticate_requests(self, client):
        refresh_token = login_tokens(client)["refresh_token"]

        response = client.get("/api/auth/user-profile", headers={"Authorization": f"Bearer {refresh_token}"})
        assert response.status_code == 401

    def test_refresh_token(self, client):
        """Test token refresh."""
        refresh_token = login_tokens(client)["refresh_token"]

        response = client.post(
            "/api/auth/refresh",
            json={"refresh_token": refresh_token}
        )
        assert response.status_code == 200

        data = response.json()["data"]
        assert "access_token" in data
        assert data["refresh_token"] != refresh_token

        # The old refresh token was rotated out
        response = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 401

    def test_refresh_invalid_token(self, client):
        """Test refresh with invalid token."""
        response = client.post(
            "/api/auth/refresh",
            json={"refresh_token": "invalid_token"}
        )
        assert response.status_code == 401

    def test_logout(self, client):
        """Test user logout."""
        refresh_token = login_tokens(client)["refresh_token"]

        response = client.post(
            "/api/auth/logout",
            json={"refresh_token": refresh_token}
        )
        assert response.status_code == 200
        assert response.json()["message"] == "Successfully logged out"

        response = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
        assert response.status_code == 401
