def test_anonymous_sign_in(client):
    res = client.post('/auth/anonymous', json={'name': '  Party   Animal '})
    assert res.status_code == 201
    user = res.get_json()['user']
    assert user['anonymous'] is True
    assert user['display_name'] == 'Party Animal'

    me = client.get('/auth/me')
    assert me.status_code == 200
    assert me.get_json()['user']['id'] == user['id']


def test_each_anonymous_sign_in_is_a_new_identity(flask_app):
    first = flask_app.test_client().post('/auth/anonymous', json={}).get_json()['user']
    second = flask_app.test_client().post('/auth/anonymous', json={}).get_json()['user']
    assert first['id'] != second['id']
    assert first['display_name'] == 'Player'


def test_register_login_logout(client):
    res = client.post('/auth/register', json={'username': 'bea', 'password': 's3cret', 'name': 'Bea'})
    assert res.status_code == 201
    assert res.get_json()['user']['anonymous'] is False

    assert client.post('/auth/logout').status_code == 200
    assert client.get('/auth/me').status_code == 401

    res = client.post('/auth/login', json={'username': 'bea', 'password': 'wrong'})
    assert res.status_code == 401
    assert res.get_json()['error'] == 'invalid_credentials'

    res = client.post('/auth/login', json={'username': 'bea', 'password': 's3cret'})
    assert res.status_code == 200
    assert res.get_json()['user']['display_name'] == 'Bea'


def test_register_rejects_duplicates_and_blanks(client):
    client.post('/auth/register', json={'username': 'bea', 'password': 's3cret'})

    res = client.post('/auth/register', json={'username': 'bea', 'password': 'other'})
    assert res.status_code == 400
    assert res.get_json()['error'] == 'username_taken'

    res = client.post('/auth/register', json={'username': '', 'password': 'x'})
    assert res.status_code == 400
