# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
Scenario settings
"""
import os
from .utils import ConfigurationError

DEFAULT_HOST = '127.0.0.1'
DEFAULT_PORT = 8021
DEFAULT_PASSWORD = 'ClueCon'
# extensions dialed as the customer and agent on the server's external profile
CUSTOMER_EXTENSION = '4448'
AGENT_EXTENSION = '4449'
# dialplan extension which hands inbound calls to our listener via
# <action application="socket" data="<our ip>:8084 async full"/>
DIAL_IN_EXTENSION = '6789'
LISTEN_ADDRESS = '0.0.0.0'
LISTEN_PORT = 8084
WELCOME_SOUND = 'ivr/8000/ivr-welcome_to_freeswitch.wav'
RECORDING_DIR = '/var/tmp'
ORIGINATE_TIMEOUT = 30
PLAYBACK_TIMEOUT = 300


def default_uri(extension, host, profile='external'):
    return 'sofia/{}/{}@{}'.format(profile, extension, host)


class Settings(object):
    """All tunables for the bridge scenarios.

    The customer and agent URIs default to extensions on the server's
    ``external`` sofia profile at ``host``.
    """
    def __init__(
        self,
        host=DEFAULT_HOST,
        port=DEFAULT_PORT,
        password=DEFAULT_PASSWORD,
        customer_uri=None,
        agent_uri=None,
        dial_in=DIAL_IN_EXTENSION,
        listen_address=LISTEN_ADDRESS,
        listen_port=LISTEN_PORT,
        max_connections=10,
        welcome_sound=WELCOME_SOUND,
        recording_dir=RECORDING_DIR,
        originate_timeout=ORIGINATE_TIMEOUT,
        playback_timeout=PLAYBACK_TIMEOUT,
        ignore_early_media=False,
    ):
        self.host = host
        self.port = int(port)
        self.password = password
        self.customer_uri = customer_uri or default_uri(
            CUSTOMER_EXTENSION, host)
        self.agent_uri = agent_uri or default_uri(AGENT_EXTENSION, host)
        self.dial_in = dial_in
        self.listen_address = listen_address
        self.listen_port = int(listen_port)
        self.max_connections = int(max_connections)
        self.welcome_sound = welcome_sound
        self.recording_dir = recording_dir
        self.originate_timeout = int(originate_timeout)
        self.playback_timeout = float(playback_timeout)
        self.ignore_early_media = bool(ignore_early_media)
        self.validate()

    def __repr__(self):
        return '<{} {}:{} customer={} agent={}>'.format(
            type(self).__name__, self.host, self.port,
            self.customer_uri, self.agent_uri)

    def validate(self):
        """Raise ``ConfigurationError`` for settings which can't work.
        """
        if not self.host:
            raise ConfigurationError("A FreeSWITCH host is required")
        for name in ('port', 'listen_port'):
            value = getattr(self, name)
            if not 0 < value < 65536:
                raise ConfigurationError(
                    "'{}' must be a valid TCP port, got {}".format(
                        name, value))
        if self.originate_timeout <= 0:
            raise ConfigurationError("'originate_timeout' must be positive")
        if self.playback_timeout <= 0:
            raise ConfigurationError("'playback_timeout' must be positive")
        if self.max_connections <= 0:
            raise ConfigurationError("'max_connections' must be positive")
        if not os.path.isabs(self.recording_dir):
            raise ConfigurationError(
                "'recording_dir' must be an absolute path on the server, "
                "got '{}'".format(self.recording_dir))

    def recording_path(self, recording_id):
        """Server side path for the recording named ``recording_id``.
        """
        return '{}/{}.wav'.format(self.recording_dir.rstrip('/'),
                                  recording_id)
