# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
import sys
import pytest
from switchbridge import utils
from switchbridge.config import Settings
from switchbridge.connection import Connection
from switchbridge.handlers import EventListener
from switchbridge.scenario import BridgeScenario
from helpers import FakeESL


def pytest_addoption(parser):
    '''Add server options for pointing to the engine we will use for testing
    '''
    parser.addoption("--fshost", action="store", dest='fshost',
                     default=None,
                     help="fs-engine server host or ip")
    parser.addoption("--fsport", action="store", dest='fsport',
                     default=8021,
                     help="fs-engine event socket port")


@pytest.fixture(scope='session', autouse=True)
def loglevel(request):
    level = max(40 - request.config.option.verbose * 10, 5)
    if sys.stdout.isatty():
        # enable console logging
        utils.log_to_stderr(level)

    return level


@pytest.fixture(scope='session')
def fshost(request):
    '''Return the FS test server hostname passed via the
    ``--fshost`` cmd line arg.
    '''
    host = request.config.option.fshost
    if not host:
        pytest.skip("the '--fshost' option is required to determine the "
                    "FreeSWITCH server to connect to for testing")
    return host


@pytest.fixture
def fake_esl():
    '''A ``greenswitch.InboundESL`` factory delivering ``FakeESL``s.
    Created instances are kept in ``fake_esl.instances``.
    '''
    instances = []

    def factory(**kwargs):
        esl = FakeESL(**kwargs)
        instances.append(esl)
        return esl

    factory.instances = instances
    return factory


@pytest.fixture
def con(fake_esl):
    '''Deliver a connected connection to a fake server
    '''
    con = Connection('fshost', esl_factory=fake_esl)
    con.connect()
    yield con
    con.disconnect()


@pytest.fixture
def esl(con):
    return con.esl


@pytest.fixture
def listener(con):
    '''Deliver a connected event listener
    '''
    listener = EventListener(con)
    listener.connect()
    yield listener
    listener.disconnect()


@pytest.fixture
def settings():
    return Settings(host='fshost', originate_timeout=1, playback_timeout=1)


@pytest.fixture
def scenario(listener, settings):
    return BridgeScenario(listener, settings)
