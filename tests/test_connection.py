# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
'''
Test ESL connection wrapper
'''
import functools
import pytest
import switchbridge
from switchbridge import utils
from switchbridge.connection import get_connection, Connection
from helpers import FakeESL, parse_headers


@pytest.mark.parametrize(
    'password, expect_auth',
    [('doggy', False), ('ClueCon', True)],
    ids=lambda item: item,
)
def test_connect(fake_esl, password, expect_auth):
    """Connection basics.
    """
    con = get_connection('fshost', password=password, esl_factory=fake_esl)
    if expect_auth:
        con.connect()
        assert con.connected()
    else:
        with pytest.raises(switchbridge.ConnectionError):
            con.connect()
        assert not con.connected()


def test_connect_refused():
    con = Connection(
        'fshost', esl_factory=functools.partial(FakeESL, refuse=True))
    with pytest.raises(switchbridge.ConnectionError) as excinfo:
        con.connect()
    assert "fshost:8021" in str(excinfo.value)
    assert not con.connected()


def test_disconnect(con, esl):
    assert con.connected()
    con.disconnect()
    assert not con.connected()
    assert not esl.connected
    # idempotent
    con.disconnect()


def test_context_manager(fake_esl):
    with Connection('fshost', esl_factory=fake_esl) as con:
        assert con.connected()
    assert not con.connected()
    assert not fake_esl.instances[0].connected


def test_api(con, esl):
    assert con.api('status') == '+OK\n'
    assert esl.sent[-1] == 'api status'


def test_api_error(con, esl):
    esl.api_errors['uuid_kill'] = '-ERR No such channel!\n'
    with pytest.raises(utils.CommandError) as excinfo:
        con.api('uuid_kill deadbeef')
    assert 'No such channel' in str(excinfo.value)
    # no error checking
    assert con.api('uuid_kill deadbeef', errcheck=False).startswith('-ERR')


def test_commands_require_connection(fake_esl):
    con = Connection('fshost', esl_factory=fake_esl)
    with pytest.raises(switchbridge.ConnectionError):
        con.api('status')


def test_bgapi_tags_job(con, esl):
    reply = con.bgapi('status', 'job-1')
    assert reply.headers['Job-UUID'] == 'job-1'
    packet = esl.sent[-1]
    assert packet.splitlines()[0] == 'bgapi status'
    assert parse_headers(packet)['Job-UUID'] == 'job-1'


def test_execute(con, esl):
    event_uuid = con.execute('chan-1', 'conference', 'room', event_uuid='e-1')
    assert event_uuid == 'e-1'
    packet = esl.sent[-1]
    assert packet.splitlines()[0] == 'sendmsg chan-1'
    headers = parse_headers(packet)
    assert headers['call-command'] == 'execute'
    assert headers['execute-app-name'] == 'conference'
    assert headers['execute-app-arg'] == 'room'
    assert headers['Event-UUID'] == 'e-1'


def test_execute_rejected(con, esl):
    esl.rejected_apps.add('conference')
    with pytest.raises(utils.CommandError):
        con.execute('chan-1', 'conference', 'room')


def test_subscribe(con, esl):
    con.subscribe(['CHANNEL_ANSWER', 'BACKGROUND_JOB'])
    assert esl.sent[-1] == 'event plain CHANNEL_ANSWER BACKGROUND_JOB'
    # already subscribed names are not duplicated
    con.subscribe(['CHANNEL_ANSWER', 'CHANNEL_HANGUP'])
    assert esl.sent[-1] == (
        'event plain CHANNEL_ANSWER BACKGROUND_JOB CHANNEL_HANGUP')


def test_live_connect(fshost, request):
    """Connect to a real server when one is provided with ``--fshost``.
    """
    with get_connection(
        fshost, port=int(request.config.option.fsport)
    ) as con:
        assert con.connected()
        assert 'UP' in con.api('status')
