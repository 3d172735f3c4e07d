# tests/integration/api/test_admin_api.py
from mixdrop.api.models import AuditLog, User


def test_admin_routes_require_admin(client, create_user, auth_headers):
    """Un utilisateur standard reçoit 403, un anonyme 401."""
    user = create_user()

    assert client.get("/api/admin/users").status_code == 401
    assert client.get("/api/admin/users", headers=auth_headers(user)).status_code == 403
    assert client.get("/api/admin/stats", headers=auth_headers(user)).status_code == 403


def test_list_users(client, create_user, auth_headers):
    admin = create_user(role="admin")
    create_user(name="Resident", status="suspended")

    response = client.get("/api/admin/users?status=suspended", headers=auth_headers(admin))

    assert response.status_code == 200
    data = response.json()
    assert [u["name"] for u in data["users"]] == ["Resident"]
    assert data["users"][0]["mixCount"] == 0
    assert data["pagination"]["total"] == 1


def test_get_user(client, create_user, auth_headers):
    admin = create_user(role="admin")
    user = create_user()

    response = client.get(f"/api/admin/users/{user.id}", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["email"] == user.email


def test_get_unknown_user(client, create_user, auth_headers):
    admin = create_user(role="admin")

    response = client.get("/api/admin/users/999", headers=auth_headers(admin))

    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_demote_last_admin_refused(client, create_user, auth_headers, db_session):
    """Rétrograder le dernier administrateur renvoie 400 sans rien modifier."""
    admin = create_user(role="admin")

    response = client.patch(f"/api/admin/users/{admin.id}", json={"role": "user"}, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot demote the last admin"}
    db_session.expire_all()
    assert db_session.get(User, admin.id).role == "admin"
    assert db_session.query(AuditLog).count() == 0


def test_promote_user(client, create_user, auth_headers, db_session):
    admin = create_user(role="admin")
    user = create_user()

    response = client.patch(f"/api/admin/users/{user.id}", json={"role": "admin"}, headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["role"] == "admin"
    entry = db_session.query(AuditLog).one()
    assert entry.action == "user.role.change"
    assert entry.actor_id == admin.id


def test_invalid_role_rejected(client, create_user, auth_headers):
    admin = create_user(role="admin")
    user = create_user()

    response = client.patch(f"/api/admin/users/{user.id}", json={"role": "superuser"}, headers=auth_headers(admin))

    assert response.status_code == 400


def test_ban_user_blocks_session(client, create_user, auth_headers):
    """Un compte banni est traité comme anonyme sur ses sessions existantes."""
    admin = create_user(role="admin")
    user = create_user()
    user_headers = auth_headers(user)
    assert client.get("/api/users/me", headers=user_headers).status_code == 200

    response = client.delete(f"/api/admin/users/{user.id}", headers=auth_headers(admin))

    assert response.status_code == 200
    assert client.get("/api/users/me", headers=user_headers).status_code == 401


def test_delete_last_admin_refused(client, create_user, auth_headers):
    admin = create_user(role="admin")

    response = client.delete(f"/api/admin/users/{admin.id}", headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json() == {"error": "Cannot delete the last admin"}


def test_stats(client, create_user, create_mix, create_playlist, auth_headers):
    admin = create_user(role="admin")
    create_mix(admin, file_size=3 * 1024 * 1024)
    create_playlist(admin)

    response = client.get("/api/admin/stats", headers=auth_headers(admin))

    assert response.status_code == 200
    data = response.json()
    assert data["users"]["total"] == 1
    assert data["mixes"]["total"] == 1
    assert data["playlists"]["total"] == 1
    assert data["storage"]["totalMB"] == 3


def test_storage_reconcile_dry_run(client, create_user, auth_headers, storage):
    admin = create_user(role="admin")

    response = client.post("/api/admin/storage/reconcile", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json() == {
        "dryRun": True,
        "orphanedObjects": [],
        "danglingMixes": [],
        "deletedObjects": [],
        "deletedMixes": [],
    }
    storage.delete.assert_not_called()
