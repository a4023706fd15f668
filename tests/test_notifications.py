import pytest

from arena.errors import InvalidParameter, InvalidRoomState, NotAllowed
from arena.services.notifications import Invitation


def test_invite_reaches_every_connection(services, emitter):
    services.registry.register('sid-b2', 'bob')
    delivered = services.notifications.notify(Invitation('ROOM01', 'alice', 'bob'))

    assert delivered == 2
    expected = {'roomCode': 'ROOM01', 'inviterUsername': 'alice'}
    assert emitter.events('friendInvited', 'sid-b') == [expected]
    assert emitter.events('friendInvited', 'sid-b2') == [expected]


def test_offline_target_is_dropped(services, emitter):
    assert services.notifications.notify(Invitation('ROOM01', 'alice', 'dave')) == 0
    assert emitter.sent == []
    assert services.notifications.pending_for('dave') == []


def test_duplicate_invites_are_suppressed_until_expiry(services, emitter, clock):
    relay = services.notifications
    assert relay.notify(Invitation('ROOM01', 'alice', 'bob')) == 1
    assert relay.notify(Invitation('ROOM01', 'alice', 'bob')) == 0
    assert relay.notify(Invitation('ROOM02', 'alice', 'bob')) == 1

    clock.advance(301)
    assert relay.notify(Invitation('ROOM01', 'alice', 'bob')) == 1
    assert len(emitter.events('friendInvited', 'sid-b')) == 3


def test_dismissed_invite_can_be_sent_again(services):
    relay = services.notifications
    relay.notify(Invitation('ROOM01', 'alice', 'bob'))
    assert relay.dismiss('bob', 'ROOM01') is True
    assert relay.dismiss('bob', 'ROOM01') is False
    assert relay.notify(Invitation('ROOM01', 'alice', 'bob')) == 1


def test_trivia_invites_use_their_own_event(services, emitter):
    services.notifications.notify(Invitation('ROOM01', 'alice', 'bob', mode='trivia'))
    assert emitter.events('friendInvitedTrivia', 'sid-b') == [{'roomCode': 'ROOM01', 'inviterUsername': 'alice'}]
    assert emitter.events('friendInvited') == []


def test_invite_only_room_notifies_its_guest(services, emitter):
    room = services.create_room('alice', 'easy', 300, allow_username='bob')
    assert room.invite_only
    assert emitter.events('friendInvited', 'sid-b') == [{'roomCode': room.code, 'inviterUsername': 'alice'}]
    assert len(services.notifications.pending_for('bob')) == 1

    services.membership.join(room.code, 'alice', 'sid-a')
    services.membership.join(room.code, 'bob', 'sid-b')
    assert services.notifications.pending_for('bob') == []


def test_room_start_forgets_outstanding_invites(services):
    room = services.create_room('alice', 'easy', 300)
    services.membership.join(room.code, 'alice', 'sid-a')
    assert services.invite(room.code, 'alice', 'carol') == 1
    services.membership.join(room.code, 'bob', 'sid-b')
    assert services.notifications.pending_for('carol') == []


def test_invite_rules(services):
    room = services.create_room('alice', 'easy', 300, allow_username='bob')
    with pytest.raises(NotAllowed):
        services.invite(room.code, 'carol', 'bob')
    with pytest.raises(NotAllowed):
        services.invite(room.code, 'alice', 'carol')

    open_room = services.create_room('alice', 'easy', 300)
    services.membership.join(open_room.code, 'alice', 'sid-a')
    services.membership.join(open_room.code, 'bob', 'sid-b')
    with pytest.raises(InvalidRoomState):
        services.invite(open_room.code, 'alice', 'carol')


@pytest.mark.parametrize('username', [None, '', '   ', 42, ['bob']])
def test_invite_requires_a_username_string(services, username):
    room = services.create_room('alice', 'easy', 300)
    with pytest.raises(InvalidParameter):
        services.invite(room.code, 'alice', username)


def test_allow_username_must_be_a_string(services):
    with pytest.raises(InvalidParameter):
        services.create_room('alice', 'easy', 300, allow_username={'username': 'bob'})
    room = services.create_room('alice', 'easy', 300, allow_username='  bob ')
    assert room.allow_list == {'bob'}
