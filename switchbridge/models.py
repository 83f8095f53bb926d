# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
Models representing FreeSWITCH entities
"""
import time
from collections import namedtuple

from gevent.event import Event

from . import utils


class TimeoutError(utils.ESLError):
    pass


class JobError(utils.ESLError):
    pass


HANGUP_EVENTS = ('CHANNEL_HANGUP', 'CHANNEL_HANGUP_COMPLETE')


def event_body(event):
    """Return the body of an ESL event.

    ``greenswitch`` only sets ``event.data`` for api responses and log
    lines. A ``text/event-plain`` body is parsed as more header text which
    appends its lines to the value of the last real header
    (``Content-Length``), unless the line holds ``': '`` in which case it
    becomes a header of its own.
    """
    data = getattr(event, 'data', None)
    if data:
        return data

    headers = event.headers
    _, sep, body = headers.get('Content-Length', '').partition('\n\n')
    if sep:
        return body
    for key, value in headers.items():
        if key.startswith(('+OK', '-ERR')):
            return '{}: {}'.format(key, value)
    return ''


class ChannelEvent(namedtuple(
    'ChannelEvent',
    'uuid name channel_state answer_state call_direction hangup_cause'
)):
    """A channel state change notification extracted from an ESL event.
    """
    __slots__ = ()

    @classmethod
    def from_event(cls, event):
        headers = event.headers
        return cls(
            uuid=headers.get('Unique-ID'),
            name=headers.get('Event-Name'),
            channel_state=headers.get('Channel-State'),
            answer_state=headers.get('Answer-State'),
            call_direction=headers.get('Call-Direction'),
            hangup_cause=headers.get('Hangup-Cause'),
        )

    @property
    def answered(self):
        return self.answer_state == 'answered'

    @property
    def hungup(self):
        return self.name in HANGUP_EVENTS or self.answer_state == 'hangup'


class Job(object):
    '''A background job future.
    The interface closely matches `multiprocessing.pool.AsyncResult`.

    :param str uuid: job uuid sent with the ``bgapi`` command
    :param str sess_uuid: optional session uuid if job is associated with an
        active FS session
    '''
    def __init__(self, uuid, sess_uuid=None, cmd=None):
        self.uuid = uuid
        self.sess_uuid = sess_uuid
        self.cmd = cmd
        self.launch_time = time.time()
        self.events = []
        self._result = None
        self._failed = False
        self._sig = Event()  # signal/sync job completion

    def __repr__(self):
        return "<{}({}, ready={})>".format(
            type(self).__name__, self.uuid, self.ready())

    def __call__(self, event):
        '''Complete this job using the ``BACKGROUND_JOB`` event carrying its
        response body.
        '''
        self.events.append(event)
        body = event_body(event)
        if utils.is_error(body):
            self.fail(body)
        else:
            self._result = body.strip()
            self._sig.set()
        return self._result

    def fail(self, resp):
        '''Fail this job setting an exception as its result
        '''
        self._failed = True
        self._result = JobError(utils.last_line(resp) or resp)
        self._sig.set()

    @property
    def result(self):
        '''The final result
        '''
        return self.get()

    def get(self, timeout=None):
        '''Get the result for this job waiting up to `timeout` seconds.
        Raises `TimeoutError` if the job does not complete within the
        alotted time.
        '''
        if not self._sig.wait(timeout):
            raise TimeoutError("Job not complete after '{}' seconds"
                               .format(timeout))
        return self._result

    def ready(self):
        '''Return bool indicating whether job has completed
        '''
        return self._sig.is_set()

    def wait(self, timeout=None):
        '''Wait until job has completed or `timeout` has expired
        '''
        return self._sig.wait(timeout)

    def successful(self):
        '''Return bool determining whether job completed without error
        '''
        assert self.ready(), 'Job has not completed yet'
        return not self._failed


class Session(object):
    '''Call control API for a single channel (one leg of a call).
    '''
    def __init__(self, uuid, con, listener=None):
        self.uuid = uuid
        self.con = con
        self.listener = listener
        # sub-namespace for apps to set/get state
        self.vars = {}
        self.answered = False
        self.hungup = False
        self._log = None

    @property
    def log(self):
        """Local logger instance.
        """
        if not self._log:
            self._log = utils.get_logger(utils.pstr(self.con))
        return self._log

    def __repr__(self):
        rep = object.__repr__(self).strip('<>')
        return "<{} with UUID: {}>".format(rep, self.uuid)

    def update(self, chan_event):
        '''Update state using a ``ChannelEvent``
        '''
        if chan_event.answered:
            self.answered = True
        if chan_event.hungup:
            self.hungup = True

    def execute(self, app, arg='', block=False, timeout=None):
        """Execute a dialplan application on this channel.

        If ``block`` is true wait (up to ``timeout`` seconds) for the app to
        finish and return its ``CHANNEL_EXECUTE_COMPLETE`` event, otherwise
        return as soon as the server has accepted the command.
        """
        event_uuid = utils.uuid()
        waiter = None
        if block:
            # register before sending so a fast completion isn't missed
            waiter = self.listener.expect_completion(event_uuid, self.uuid)

        try:
            self.con.execute(self.uuid, app, arg, event_uuid=event_uuid)
        except Exception:
            if waiter is not None:
                self.listener.discard_completion(event_uuid)
            raise

        if waiter is None:
            return None

        event = waiter.wait(timeout)
        if not waiter.ready():
            self.listener.discard_completion(event_uuid)
            raise TimeoutError(
                "'{}' did not complete on '{}' within {} seconds"
                .format(app, self.uuid, timeout))
        return event

    def answer(self):
        self.con.api("uuid_answer {}".format(self.uuid))
        self.answered = True
        return True

    def playback(self, path, block=True, timeout=None):
        '''Playback a file on this session.

        When blocking, return a bool indicating whether the file was played
        in full.
        '''
        event = self.execute('playback', path, block=block, timeout=timeout)
        if not block:
            return None
        response = event.headers.get('Application-Response', '')
        return response == 'FILE PLAYED'

    def conference(self, name, profile=None):
        """Join this channel to conference ``name``. The conference app runs
        until the channel leaves so this never blocks.
        """
        arg = '{}@{}'.format(name, profile) if profile else name
        self.execute('conference', arg)
        return name

    def start_record(self, path):
        '''Record audio from this session to a file on the server filesystem
        using the `uuid_record`_ command.

        .. _uuid_record:
            https://freeswitch.org/confluence/display/FREESWITCH/mod_commands#mod_commands-uuid_record
        '''
        self.con.api('uuid_record {} start {}'.format(self.uuid, path))
        return path

    def stop_record(self, path='all'):
        self.con.api('uuid_record {} stop {}'.format(self.uuid, path))

    def hangup(self, cause='NORMAL_CLEARING'):
        '''Hangup this session with the provided `cause` hangup type keyword.
        '''
        self.con.api('uuid_kill {} {}'.format(self.uuid, cause))
        self.hungup = True
        return True
