import pytest
from sqlalchemy import select

from fakes import auth_headers
from tailauth.db.models import TeamMembership, User

pytestmark = [pytest.mark.anyio, pytest.mark.integration]


async def test_requires_authentication(client, team):
    resp = await client.get('/api/team-members/')
    assert resp.status_code == 401


async def test_owner_lists_account_roster(client, team):
    resp = await client.get('/api/team-members/', headers=auth_headers(team['alice']))
    assert resp.status_code == 200
    ids = {m['id'] for m in resp.json()}
    assert ids == {'m-bob', 'm-carol', 'm-dave'}


async def test_admin_roster_is_scoped_to_owner_account(client, team):
    resp = await client.get('/api/team-members/', headers=auth_headers(team['bob']))
    assert resp.status_code == 200
    assert {m['invited_by_user_id'] for m in resp.json()} == {'alice'}


async def test_member_cannot_list_roster(client, team):
    resp = await client.get('/api/team-members/', headers=auth_headers(team['carol']))
    assert resp.status_code == 403
    detail = resp.json()['detail']
    assert detail['role'] == 'MEMBER'
    assert 'view_team_members' in detail['error']


async def test_unrelated_owner_sees_empty_roster(client, team):
    resp = await client.get('/api/team-members/', headers=auth_headers(team['zed']))
    assert resp.status_code == 200
    assert resp.json() == []


async def test_assignable_lists_owner_first(client, team):
    resp = await client.get('/api/team-members/assignable', headers=auth_headers(team['bob']))
    assert resp.status_code == 200
    members = resp.json()
    assert members[0] == {'id': 'alice', 'name': 'Alice', 'email': 'alice@example.com', 'is_owner': True}
    assert [m['id'] for m in members[1:]] == ['bob', 'carol']


async def test_owner_invites_admin(client, team):
    resp = await client.post(
        '/api/team-members/',
        json={'email': 'Erin@Example.com', 'name': 'Erin', 'role': 'ADMIN'},
        headers=auth_headers(team['alice']),
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body['email'] == 'erin@example.com'
    assert body['status'] == 'PENDING'
    assert body['role'] == 'ADMIN'
    assert body['invited_by_user_id'] == 'alice'
    assert body['member_user_id'] is None


async def test_admin_invites_into_owner_account(client, team):
    resp = await client.post(
        '/api/team-members/',
        json={'email': 'frank@example.com'},
        headers=auth_headers(team['bob']),
    )
    assert resp.status_code == 201
    assert resp.json()['invited_by_user_id'] == 'alice'
    assert resp.json()['role'] == 'MEMBER'


async def test_admin_cannot_invite_admin(client, team):
    resp = await client.post(
        '/api/team-members/',
        json={'email': 'frank@example.com', 'role': 'ADMIN'},
        headers=auth_headers(team['bob']),
    )
    assert resp.status_code == 403


@pytest.mark.parametrize('payload, status', [
    ({'email': 'carol@example.com'}, 409),
    ({'email': 'alice@example.com'}, 400),
    ({'email': 'erin@example.com', 'role': 'OWNER'}, 400),
    ({'email': 'not-an-email'}, 422),
])
async def test_invite_validation(client, team, payload, status):
    resp = await client.post('/api/team-members/', json=payload, headers=auth_headers(team['alice']))
    assert resp.status_code == status


async def test_member_cannot_invite(client, team):
    resp = await client.post(
        '/api/team-members/',
        json={'email': 'frank@example.com'},
        headers=auth_headers(team['carol']),
    )
    assert resp.status_code == 403


async def test_invitation_acceptance_moves_user_into_account(client, team, test_session):
    erin = User(id='erin', email='erin@example.com', name='Erin')
    test_session.add(erin)
    await test_session.commit()

    invite = await client.post(
        '/api/team-members/',
        json={'email': 'erin@example.com', 'role': 'ADMIN'},
        headers=auth_headers(team['alice']),
    )
    membership_id = invite.json()['id']
    assert invite.json()['member_user_id'] == 'erin'

    before = await client.get('/api/auth/context', headers=auth_headers(erin))
    assert before.json()['role'] == 'OWNER'
    assert before.json()['account_id'] == 'erin'

    accepted = await client.post(f'/api/team-members/accept/{membership_id}', headers=auth_headers(erin))
    assert accepted.status_code == 200
    assert accepted.json()['status'] == 'ACCEPTED'
    assert accepted.json()['joined_at'] is not None

    after = await client.get('/api/auth/context', headers=auth_headers(erin))
    assert after.json()['role'] == 'ADMIN'
    assert after.json()['account_id'] == 'alice'

    again = await client.post(f'/api/team-members/accept/{membership_id}', headers=auth_headers(erin))
    assert again.status_code == 404


async def test_accept_requires_matching_email(client, team):
    resp = await client.post('/api/team-members/accept/m-dave', headers=auth_headers(team['zed']))
    assert resp.status_code == 404


async def test_accepted_member_cannot_join_second_account(client, team):
    invite = await client.post(
        '/api/team-members/',
        json={'email': 'carol@example.com'},
        headers=auth_headers(team['zed']),
    )
    assert invite.status_code == 201

    resp = await client.post(
        f"/api/team-members/accept/{invite.json()['id']}",
        headers=auth_headers(team['carol']),
    )
    assert resp.status_code == 409


async def test_owner_with_members_cannot_join_another_account(client, team):
    invite = await client.post(
        '/api/team-members/',
        json={'email': 'alice@example.com'},
        headers=auth_headers(team['zed']),
    )
    assert invite.status_code == 201

    resp = await client.post(
        f"/api/team-members/accept/{invite.json()['id']}",
        headers=auth_headers(team['alice']),
    )
    assert resp.status_code == 409

    context = await client.get('/api/auth/context', headers=auth_headers(team['alice']))
    assert context.json()['role'] == 'OWNER'
    admin = await client.get('/api/auth/context', headers=auth_headers(team['bob']))
    assert admin.json()['account_id'] == 'alice'


async def test_owner_with_pending_invitation_cannot_join_another_account(client, team, test_session):
    erin = User(id='erin', email='erin@example.com', name='Erin')
    test_session.add(erin)
    await test_session.commit()

    sent = await client.post(
        '/api/team-members/',
        json={'email': 'frank@example.com'},
        headers=auth_headers(erin),
    )
    assert sent.status_code == 201

    invite = await client.post(
        '/api/team-members/',
        json={'email': 'erin@example.com'},
        headers=auth_headers(team['zed']),
    )
    resp = await client.post(
        f"/api/team-members/accept/{invite.json()['id']}",
        headers=auth_headers(erin),
    )
    assert resp.status_code == 409


async def test_decline_invitation(client, team, test_session):
    resp = await client.post('/api/team-members/decline/m-dave', headers=auth_headers(team['dave']))
    assert resp.status_code == 200

    result = await test_session.execute(
        select(TeamMembership.status).where(TeamMembership.id == 'm-dave')
    )
    assert result.scalar_one() == 'DECLINED'

    context = await client.get('/api/auth/context', headers=auth_headers(team['dave']))
    assert context.json()['account_id'] == 'dave'


async def test_owner_promotes_member(client, team):
    resp = await client.put(
        '/api/team-members/m-carol', json={'role': 'ADMIN'}, headers=auth_headers(team['alice'])
    )
    assert resp.status_code == 200
    assert resp.json()['role'] == 'ADMIN'

    context = await client.get('/api/auth/context', headers=auth_headers(team['carol']))
    assert context.json()['role'] == 'ADMIN'


async def test_admin_cannot_promote_to_admin(client, team):
    resp = await client.put(
        '/api/team-members/m-carol', json={'role': 'ADMIN'}, headers=auth_headers(team['bob'])
    )
    assert resp.status_code == 403
    assert resp.json()['detail']['role'] == 'ADMIN'


async def test_admin_cannot_demote_another_admin(client, team):
    resp = await client.put(
        '/api/team-members/m-bob', json={'role': 'MEMBER'}, headers=auth_headers(team['bob'])
    )
    assert resp.status_code == 403


async def test_owner_role_cannot_be_granted(client, team):
    resp = await client.put(
        '/api/team-members/m-carol', json={'role': 'OWNER'}, headers=auth_headers(team['alice'])
    )
    assert resp.status_code == 403


async def test_role_change_outside_account_is_not_found(client, team):
    resp = await client.put(
        '/api/team-members/m-carol', json={'role': 'MEMBER'}, headers=auth_headers(team['zed'])
    )
    assert resp.status_code == 404


async def test_admin_removes_member(client, team):
    resp = await client.delete('/api/team-members/m-carol', headers=auth_headers(team['bob']))
    assert resp.status_code == 200

    context = await client.get('/api/auth/context', headers=auth_headers(team['carol']))
    assert context.json()['account_id'] == 'carol'


async def test_admin_cannot_remove_pending_admin(client, team):
    resp = await client.delete('/api/team-members/m-dave', headers=auth_headers(team['bob']))
    assert resp.status_code == 403


async def test_member_cannot_remove(client, team):
    resp = await client.delete('/api/team-members/m-bob', headers=auth_headers(team['carol']))
    assert resp.status_code == 403


async def test_owner_removes_admin(client, team):
    resp = await client.delete('/api/team-members/m-bob', headers=auth_headers(team['alice']))
    assert resp.status_code == 200
