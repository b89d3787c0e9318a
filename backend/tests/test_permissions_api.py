from app import get_db
from app.models.audit import AuditLog
from tests.test_utils_seed import seed_login


def _admin(client):
    return seed_login(client, 'perm_api_admin@example.com', 'Administrator')


def _registrar(client):
    return seed_login(client, 'perm_api_registrar@example.com', 'Registrar')


def _user(client):
    return seed_login(client, 'perm_api_user@example.com', 'User')


def test_everyone_can_view_overrides_but_only_admin_saves(client):
    user = _user(client)
    resp = client.get('/iam/permissions', headers=user)
    assert resp.status_code == 200
    assert 'Register new brands' in resp.get_json()['keys']
    denied = client.post('/iam/permissions', json={'role': 'User', 'permissions': {'View brands': False}}, headers=user)
    assert denied.status_code == 403


def test_override_save_and_reset_take_effect_immediately(client):
    admin = _admin(client); registrar = _registrar(client)
    assert client.post('/catalog/brands', json={'name': 'PermApi Before'}, headers=registrar).status_code == 201
    try:
        saved = client.post(
            '/iam/permissions',
            json={'role': 'Registrar', 'permissions': {'Register new brands': False}},
            headers=admin,
        )
        assert saved.status_code == 200, saved.get_json()
        assert saved.get_json() == {'role': 'Registrar', 'permissions': {'Register new brands': False}}
        blocked = client.post('/catalog/brands', json={'name': 'PermApi During'}, headers=registrar)
        assert blocked.status_code == 403
        fetched = client.get('/iam/permissions/Registrar', headers=registrar)
        assert fetched.status_code == 200
        assert fetched.get_json()['permissions'] == {'Register new brands': False}
        check = client.get('/iam/permissions/check?path=/brands/new', headers=registrar).get_json()
        assert check == {'path': '/brands/new', 'role': 'Registrar', 'allowed': False}
    finally:
        reset = client.delete('/iam/permissions/Registrar', headers=admin)
    assert reset.status_code == 200
    assert reset.get_json() == {'role': 'Registrar', 'reset': True}
    assert client.get('/iam/permissions/Registrar', headers=admin).status_code == 404
    assert client.post('/catalog/brands', json={'name': 'PermApi After'}, headers=registrar).status_code == 201


def test_save_is_audited(client):
    admin = _admin(client)
    try:
        resp = client.post('/iam/permissions', json={'role': 'User', 'permissions': {'View vehicles': False}}, headers=admin)
        assert resp.status_code == 200
        row = next(iter(AuditLog.history(get_db(), 'Role', 'User', action='PERMISSIONS.SAVE')), None)
        assert row is not None
        assert row.actor_role == 'Administrator'
        assert row.meta['keys'] == ['View vehicles']
    finally:
        client.delete('/iam/permissions/User', headers=admin)


def test_administrator_overrides_rejected(client):
    admin = _admin(client)
    resp = client.post('/iam/permissions', json={'role': 'Administrator', 'permissions': {'View brands': False}}, headers=admin)
    assert resp.status_code == 403
    assert client.delete('/iam/permissions/Administrator', headers=admin).status_code == 403


def test_invalid_payloads(client):
    admin = _admin(client)
    bad_bodies = [
        {},
        {'role': 'User'},
        {'role': 'User', 'permissions': ['View brands']},
        {'role': 'User', 'permissions': {'Not a real key': True}},
        {'role': 'User', 'permissions': {'View brands': 'yes'}},
    ]
    for body in bad_bodies:
        resp = client.post('/iam/permissions', json=body, headers=admin)
        assert resp.status_code == 400, body
    unknown = client.post('/iam/permissions', json={'role': 'Ghost', 'permissions': {'View brands': True}}, headers=admin)
    assert unknown.status_code == 404
    assert client.delete('/iam/permissions/Ghost', headers=admin).status_code == 404


def test_reset_without_overrides_reports_false(client):
    admin = _admin(client)
    resp = client.delete('/iam/permissions/User', headers=admin)
    assert resp.status_code == 200
    assert resp.get_json()['reset'] is False


def test_configure_permissions_grant_lets_registrar_save(client):
    admin = _admin(client); registrar = _registrar(client)
    denied = client.post('/iam/permissions', json={'role': 'User', 'permissions': {'View models': False}}, headers=registrar)
    assert denied.status_code == 403
    try:
        client.post(
            '/iam/permissions',
            json={'role': 'Registrar', 'permissions': {'Configure system permissions': True}},
            headers=admin,
        )
        ok = client.post('/iam/permissions', json={'role': 'User', 'permissions': {'View models': False}}, headers=registrar)
        assert ok.status_code == 200
    finally:
        client.delete('/iam/permissions/User', headers=admin)
        client.delete('/iam/permissions/Registrar', headers=admin)


def test_check_and_accessible(client):
    user = _user(client); registrar = _registrar(client)
    assert client.get('/iam/permissions/check?path=/brands/new', headers=user).get_json()['allowed'] is False
    assert client.get('/iam/permissions/check?path=/brands/new', headers=registrar).get_json()['allowed'] is True
    assert client.get('/iam/permissions/check?path=/configurator', headers=user).get_json()['allowed'] is True
    assert client.get('/iam/permissions/check', headers=user).status_code == 400
    body = client.get('/iam/permissions/accessible', headers=user).get_json()
    assert body['role'] == 'User'
    paths = [a['path'] for a in body['data']]
    assert '/brands' in paths and '/admin/users' not in paths


def test_matrix(client):
    user = _user(client)
    body = client.get('/iam/permissions/matrix', headers=user).get_json()
    assert body['roles'] == ['Administrator', 'Registrar', 'User']
    settings = next(r for r in body['data'] if r['path'] == '/settings')
    assert settings['roles'] == {'Administrator': True, 'Registrar': False, 'User': False}


def test_users_and_roles_admin(client):
    admin = _admin(client); registrar = _registrar(client)
    roles = client.get('/iam/roles', headers=registrar)
    assert roles.status_code == 200
    assert {'Administrator', 'Registrar', 'User'} <= {r['name'] for r in roles.get_json()['data']}
    assert client.get('/iam/users', headers=registrar).status_code == 403
    listing = client.get('/iam/users?role=Registrar', headers=admin)
    assert listing.status_code == 200
    target = next(u for u in listing.get_json()['data'] if u['email'] == 'perm_api_registrar@example.com')
    assert target['role'] == 'Registrar'
    seed_login(client, 'perm_api_promote@example.com', 'User')
    promote_id = next(
        u['id'] for u in client.get('/iam/users?limit=200', headers=admin).get_json()['data']
        if u['email'] == 'perm_api_promote@example.com'
    )
    resp = client.put(f'/iam/users/{promote_id}/role', json={'role': 'Registrar'}, headers=admin)
    assert resp.status_code == 200
    assert resp.get_json()['role'] == 'Registrar'
    assert client.put(f'/iam/users/{promote_id}/role', json={'role': 'Ghost'}, headers=admin).status_code == 404
    assert client.put('/iam/users/999999/role', json={'role': 'User'}, headers=admin).status_code == 404
