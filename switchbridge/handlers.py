# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
High level event processing machinery.

Tracks background jobs, application completions and channel state through
a default set of event handlers and republishes channel state changes on a
queue for consumption by call control logic.
"""
from collections import OrderedDict

from gevent.event import AsyncResult
from gevent.queue import Queue

from . import utils
from .commands import build_originate_cmd
from .marks import handler, get_callbacks
from .models import ChannelEvent, Job, Session


CHANNEL_EVENTS = (
    'CHANNEL_CREATE',
    'CHANNEL_ANSWER',
    'CHANNEL_STATE',
    'CHANNEL_CALLSTATE',
    'CHANNEL_HANGUP',
    'CHANNEL_HANGUP_COMPLETE',
)


class EventListener(object):
    """``Session`` and ``Job`` tracking through a default set of
    event handlers.

    Serves as a higher level API on top of the underlying connection.
    """
    def __init__(self, con):
        self.con = con
        self.host = con.host
        self.log = utils.get_logger(utils.pstr(self))
        self.sessions = OrderedDict()
        self.bg_jobs = OrderedDict()
        self.notifications = Queue()
        # maps Application-UUID -> (session uuid, AsyncResult)
        self._completions = {}
        self._handlers = list(get_callbacks(self))

    def connect(self):
        """Connect the underlying connection, register all handlers and
        subscribe to the events they consume.
        """
        self.con.connect()
        for evname, cb in self._handlers:
            self.con.add_handler(evname, cb)
        self.con.subscribe(evname for evname, _ in self._handlers)

    def disconnect(self):
        self.con.disconnect()

    def connected(self):
        return self.con.connected()

    def register_job(self, job_uuid, **kwargs):
        '''Register for a job to be handled when the appropriate event
        arrives.
        '''
        bj = Job(job_uuid, **kwargs)
        self.bg_jobs[job_uuid] = bj
        return bj

    def count_jobs(self):
        return len(self.bg_jobs)

    def count_sessions(self):
        return len(self.sessions)

    def get_session(self, uuid):
        """Return the tracked session for ``uuid`` creating one if needed.
        """
        sess = self.sessions.get(uuid)
        if sess is None:
            sess = self.sessions[uuid] = Session(uuid, self.con, self)
        return sess

    def expect_completion(self, event_uuid, sess_uuid=None):
        """Return an ``AsyncResult`` which will be set with the
        ``CHANNEL_EXECUTE_COMPLETE`` event for the app tagged ``event_uuid``.
        """
        result = AsyncResult()
        self._completions[event_uuid] = (sess_uuid, result)
        return result

    def discard_completion(self, event_uuid):
        self._completions.pop(event_uuid, None)

    def originate(self, dest_url, timeout=30, ignore_early_media=False,
                  uuid_str=None, **kwargs):
        """Originate a call to ``dest_url`` parking the new channel once it
        answers.

        Returns a ``(Job, Session)`` pair; the job completes when the call is
        answered or fails.
        """
        uuid_str = uuid_str or utils.uuid()
        cmd = build_originate_cmd(
            dest_url, uuid_str, timeout=timeout,
            ignore_early_media=ignore_early_media, **kwargs)
        job_uuid = utils.uuid()
        job = self.register_job(job_uuid, sess_uuid=uuid_str, cmd=cmd)
        sess = self.get_session(uuid_str)
        try:
            self.con.bgapi(cmd, job_uuid)
        except Exception:
            self.bg_jobs.pop(job_uuid, None)
            self.sessions.pop(uuid_str, None)
            raise
        return job, sess

    @handler('BACKGROUND_JOB')
    def _handle_bj(self, e):
        '''Handle background job event by resolving the registered job.
        '''
        job_uuid = e.headers.get('Job-UUID')
        job = self.bg_jobs.pop(job_uuid, None)
        if job is None:
            self.log.debug("No job registered for '{}'".format(job_uuid))
            return False
        job(e)
        if not job.successful():
            self.log.warning("Job '{}' failed with '{}'".format(
                job_uuid, job._result))
        return True

    @handler('CHANNEL_EXECUTE_COMPLETE')
    def _handle_execute_complete(self, e):
        entry = self._completions.pop(e.headers.get('Application-UUID'), None)
        if entry is None:
            return False
        _, result = entry
        result.set(e)
        return True

    @handler('CHANNEL_CREATE')
    @handler('CHANNEL_ANSWER')
    @handler('CHANNEL_STATE')
    @handler('CHANNEL_CALLSTATE')
    @handler('CHANNEL_HANGUP')
    @handler('CHANNEL_HANGUP_COMPLETE')
    def _handle_channel(self, e):
        """Update any tracked session and publish the state change.
        """
        chan_event = ChannelEvent.from_event(e)
        sess = self.sessions.get(chan_event.uuid)
        if sess:
            sess.update(chan_event)
            if chan_event.name == 'CHANNEL_HANGUP_COMPLETE':
                self.sessions.pop(chan_event.uuid, None)

        if chan_event.name == 'CHANNEL_HANGUP_COMPLETE':
            # apps on a dead channel will never report completion
            for event_uuid, (sess_uuid, result) in list(
                    self._completions.items()):
                if sess_uuid == chan_event.uuid:
                    self._completions.pop(event_uuid, None)
                    result.set(e)

        self.notifications.put(chan_event)
        return True
