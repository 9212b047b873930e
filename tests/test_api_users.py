"""API tests for user management."""
from uuid import uuid4

from conftest import headers_for
from issuetrack_core import crud
from issuetrack_core.models import Role

USERS = "/api/v1/users"


class TestUsers:
    """Test the users endpoints."""

    def test_me(self, client, reporter):
        response = client.get(f"{USERS}/me", headers=headers_for(reporter))

        assert response.status_code == 200
        assert response.json()["id"] == str(reporter.id)
        assert response.json()["role"] == "USER"

    def test_me_requires_identity(self, client):
        assert client.get(f"{USERS}/me").status_code == 401

    def test_admin_creates_user(self, client, admin):
        response = client.post(
            f"{USERS}/",
            json={"email": "New.Person@Example.com", "name": "New Person", "role": "DEVELOPER"},
            headers=headers_for(admin),
        )

        assert response.status_code == 201
        assert response.json()["email"] == "new.person@example.com"
        assert response.json()["role"] == "DEVELOPER"

    def test_duplicate_email_is_409(self, client, admin, reporter):
        response = client.post(f"{USERS}/", json={"email": reporter.email}, headers=headers_for(admin))
        assert response.status_code == 409

    def test_invalid_email_is_422(self, client, admin):
        response = client.post(f"{USERS}/", json={"email": "not-an-email"}, headers=headers_for(admin))
        assert response.status_code == 422

    def test_only_admin_lists_users(self, client, admin, manager, developer):
        assert client.get(f"{USERS}/", headers=headers_for(manager)).status_code == 403

        body = client.get(f"{USERS}/", params={"role": "DEVELOPER"}, headers=headers_for(admin)).json()
        assert [u["id"] for u in body["items"]] == [str(developer.id)]

    def test_user_updates_own_profile(self, client, reporter, outsider):
        response = client.patch(f"{USERS}/{reporter.id}", json={"name": "Renamed"}, headers=headers_for(reporter))
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"

        response = client.patch(f"{USERS}/{outsider.id}", json={"name": "Hijacked"}, headers=headers_for(reporter))
        assert response.status_code == 403

    def test_role_change_requires_admin(self, client, db, reporter, admin):
        """Test that users cannot promote themselves."""
        response = client.patch(f"{USERS}/{reporter.id}", json={"role": "ADMIN"}, headers=headers_for(reporter))
        assert response.status_code == 403

        response = client.patch(f"{USERS}/{reporter.id}", json={"role": "CLIENT"}, headers=headers_for(admin))
        assert response.status_code == 200
        assert response.json()["role"] == "CLIENT"

        db.expire_all()
        assert crud.get_user(db, reporter.id).role == Role.CLIENT

    def test_delete_user(self, client, db, admin, outsider):
        user_id = outsider.id
        headers = headers_for(outsider)

        assert client.delete(f"{USERS}/{user_id}", headers=headers).status_code == 403
        assert client.delete(f"{USERS}/{user_id}", headers=headers_for(admin)).status_code == 204

        db.expire_all()
        assert crud.get_user(db, user_id) is None

    def test_cannot_delete_self(self, client, admin):
        assert client.delete(f"{USERS}/{admin.id}", headers=headers_for(admin)).status_code == 400

    def test_cannot_delete_user_with_issues(self, client, make_issue, admin, reporter):
        make_issue(reporter)
        assert client.delete(f"{USERS}/{reporter.id}", headers=headers_for(admin)).status_code == 409

    def test_missing_user_is_404(self, client, admin):
        assert client.get(f"{USERS}/{uuid4()}", headers=headers_for(admin)).status_code == 404

    def test_non_admin_gets_403_for_any_user_id(self, client, reporter, outsider):
        """Test that non-admins get 403 for existing and missing users alike."""
        headers = headers_for(reporter)

        for user_id in (outsider.id, uuid4()):
            assert client.get(f"{USERS}/{user_id}", headers=headers).status_code == 403
            assert client.patch(f"{USERS}/{user_id}", json={"name": "x"}, headers=headers).status_code == 403
            assert client.delete(f"{USERS}/{user_id}", headers=headers).status_code == 403
