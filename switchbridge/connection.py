# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
Inbound ESL connection wrapper around ``greenswitch``
"""
import greenswitch
from greenswitch.esl import NotConnectedError

from . import utils
from .commands import build_sendmsg


class ConnectionError(utils.ESLError):
    "Failed to connect to ESL"


class Connection(object):
    """An authenticated ESL "inbound method" connection used to send commands
    to and receive events from a FreeSWITCH server.

    All socket handling and event parsing is delegated to a
    ``greenswitch.InboundESL`` instance; this class adds error checking,
    logging and the few packet formats the bridge scenarios need.
    """
    def __init__(self, host, port=8021, password='ClueCon', timeout=5,
                 esl_factory=greenswitch.InboundESL):
        """
        Parameters
        -----------
        host : string
            host name or ip address for server hosting an esl connection.
        port : int
            port where esl connection socket is being offered.
        password : string
            authentication password for esl connection.
        """
        self.host = host
        self.port = port
        self.password = password
        self.timeout = timeout
        self.log = utils.get_logger(utils.pstr(self))
        self._sub = ()  # events subscription
        self._esl_factory = esl_factory
        self.esl = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exception_type, exception_val, trace):
        self.disconnect()

    def connect(self):
        """Connect and authenticate to the server.
        """
        if self.connected():
            return
        msg = ("Failed to connect to server at '{}:{}'\n"
               "Please check that FreeSWITCH is running and "
               "accepting ESL connections.".format(self.host, self.port))
        esl = self._esl_factory(
            host=self.host, port=self.port, password=self.password,
            timeout=self.timeout)
        try:
            esl.connect()
        except ValueError:
            raise ConnectionError("Invalid password?")
        except (OSError, NotConnectedError) as err:
            self.log.debug("connect failed: {}".format(err))
            raise ConnectionError(msg)

        self.esl = esl
        self.log.debug("Authenticated to {}:{}".format(self.host, self.port))

    def connected(self):
        return bool(self.esl) and bool(getattr(self.esl, 'connected', False))

    def disconnect(self):
        """Disconnect from the server if connected.
        """
        if self.esl is None:
            return
        try:
            self.esl.stop()
        except NotConnectedError:
            self.log.debug("connection already closed")
        finally:
            self.esl = None
            self._sub = ()
        self.log.debug("Disconnected from {}".format(self.host))

    def send(self, data):
        """Send a raw packet and return the library's reply event.
        """
        if not self.connected():
            raise ConnectionError("Call ``connect()`` first")
        try:
            return self.esl.send(data)
        except NotConnectedError:
            raise ConnectionError(
                "Lost connection to '{}'".format(self.host))

    def api(self, cmd, errcheck=True):
        '''Invoke api command and return its body (with error checking by
        default).
        '''
        self.log.debug("api cmd '{}'".format(cmd))
        event = self.send('api {}'.format(cmd))
        body = getattr(event, 'data', None) or ''
        if errcheck and utils.is_error(body):
            raise utils.CommandError(
                "'{}' failed with: {}".format(cmd, utils.last_line(body)))
        return body

    def bgapi(self, cmd, job_uuid):
        '''Launch a background command whose result is later delivered in a
        ``BACKGROUND_JOB`` event tagged with ``job_uuid``.
        '''
        self.log.debug("bgapi cmd '{}'".format(cmd))
        event = self.send('bgapi {}\nJob-UUID: {}'.format(cmd, job_uuid))
        reply = event.headers.get('Reply-Text', '')
        if utils.is_error(reply):
            raise utils.CommandError(
                "'{}' failed with: {}".format(cmd, reply))
        return event

    def execute(self, uuid, app, arg='', event_uuid=None, loops=1):
        """Execute a dialplan ``app`` with argument ``arg`` on channel
        ``uuid``. Returns immediately once the server has queued the app.
        """
        event_uuid = event_uuid or utils.uuid()
        msg = build_sendmsg(uuid, app, arg, event_uuid, loops=loops)
        self.log.debug("Sending message:\n{}".format(msg))
        event = self.send(msg)
        reply = event.headers.get('Reply-Text', '')
        if utils.is_error(reply):
            raise utils.CommandError(
                "Executing '{} {}' on '{}' failed with: {}"
                .format(app, arg, uuid, reply))
        return event_uuid

    def subscribe(self, event_types, fmt='plain'):
        """Subscribe connection to receive events for all names
        in `event_types`
        """
        for name in event_types:
            if name not in self._sub:
                self._sub += (name,)
        if not self._sub:
            return None
        return self.send("event {} {}".format(fmt, ' '.join(self._sub)))

    def add_handler(self, evname, handler):
        """Register ``handler`` to be invoked for every event named
        ``evname``.
        """
        self.esl.register_handle(evname, handler)

    def remove_handler(self, evname, handler):
        self.esl.unregister_handle(evname, handler)


def get_connection(host, port=8021, password='ClueCon', timeout=5,
                   esl_factory=greenswitch.InboundESL):
    """ESL connection factory.
    """
    return Connection(host, port=port, password=password, timeout=timeout,
                      esl_factory=esl_factory)
