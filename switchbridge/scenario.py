# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
Call center bridge scenarios.

Both scenarios put a customer and an agent into an ad-hoc conference:

    1) dial the customer (outbound) or answer the customer (inbound)
    2) play a welcome message to the customer
    3) create a conference and move the customer into it, where the
       conference's hold music plays until someone else joins
    4) dial the agent in the background
    5) join the agent to the conference once the agent answers
    6) let the agent and the customer talk to each other
    7) record the agent - customer conversation

Every step logs and swallows its own failure, returning ``None`` or
``False``. Later steps which depend on an identifier from an earlier one are
skipped when that identifier is missing.
"""
from . import utils

# extra seconds allowed for the BACKGROUND_JOB after the ring timeout
JOB_GRACE = 5
# errors a step may hit talking to the server
STEP_ERRORS = (utils.ESLError, OSError)


class Bridge(object):
    """The legs, conference and recording of a single bridged call.
    """
    def __init__(self, customer=None, agent=None, conference=None,
                 recording_id=None):
        self.customer = customer
        self.agent = agent
        self.conference = conference
        self.recording_id = recording_id

    def __repr__(self):
        return "<{} customer={} agent={} conference={}>".format(
            type(self).__name__,
            getattr(self.customer, 'uuid', None),
            getattr(self.agent, 'uuid', None),
            self.conference)


class BridgeScenario(object):
    """Drive the bridge scenarios through an ``EventListener``.
    """
    def __init__(self, listener, settings):
        self.listener = listener
        self.settings = settings
        self.host = settings.host
        self.log = utils.get_logger(utils.pstr(self))
        self.bridges = []
        # channel uuid -> 'Customer' | 'Agent'
        self.roles = {}

    def run_outbound(self):
        """Dial the customer and bridge them with an agent.
        """
        bridge = Bridge()
        self.bridges.append(bridge)

        customer = self.dial(self.settings.customer_uri, role='Customer',
                             bridge=bridge)
        if customer is None:
            return bridge

        return self._bridge_customer(bridge)

    def run_inbound(self, customer):
        """Answer the customer's inbound call and bridge them with an
        agent.
        """
        bridge = Bridge()
        self.bridges.append(bridge)

        if not self.answer(customer):
            return bridge

        bridge.customer = customer
        self.roles[customer.uuid] = 'Customer'
        return self._bridge_customer(bridge)

    def _bridge_customer(self, bridge):
        customer = bridge.customer
        self.play_message(customer, self.settings.welcome_sound)
        bridge.conference = self.escalate_to_conference(customer)

        # dial in the background while the customer waits in conference
        self.dial(self.settings.agent_uri, role='Agent', bridge=bridge)
        if bridge.agent is not None and bridge.conference is not None:
            self.join_conference(bridge.agent, bridge.conference)

        bridge.recording_id = self.start_recording(customer)
        return bridge

    def answer(self, session):
        label = 'AnswerCall'
        try:
            self.log.info("{} - Answering call with Uuid: {}".format(
                label, session.uuid))
            session.answer()
            self.log.info("{} - Call is answered with Uuid: {}".format(
                label, session.uuid))
            return True
        except STEP_ERRORS as err:
            self.log.error("{} - Failed to handle the call. Reason: {}"
                           .format(label, err))
            return False

    def dial(self, uri, role=None, bridge=None):
        """Originate a call to ``uri`` and wait for it to be answered.

        When given a ``bridge`` the new leg is set as its ``role`` attribute
        (lower cased) while ringing so it can be hung up if the wait is cut
        short, and reset to ``None`` if the call fails.

        Returns the new ``Session`` or ``None`` if the call failed.
        """
        label = 'Dial'
        leg = role.lower() if bridge is not None and role else None
        sess = None
        try:
            self.log.info("{} - Dialing uri: {}".format(label, uri))
            job, sess = self.listener.originate(
                uri,
                timeout=self.settings.originate_timeout,
                ignore_early_media=self.settings.ignore_early_media,
            )
            if role:
                self.roles[sess.uuid] = role
            if leg:
                setattr(bridge, leg, sess)
            job.get(self.settings.originate_timeout + JOB_GRACE)
            success = job.successful()
            self.log.info("{} - Uri: {} is dialed. Success: {}".format(
                label, uri, success))
            if not success:
                self.log.warning("{} - Uri: {} failed with: {}".format(
                    label, uri, job.result))
                self.roles.pop(sess.uuid, None)
                sess = None
        except STEP_ERRORS as err:
            self.log.error("{} - Failed to dial the uri. Reason: {}"
                           .format(label, err))
            sess = None

        if leg:
            setattr(bridge, leg, sess)
        return sess

    def play_message(self, session, media):
        """Play ``media`` to ``session`` blocking until playback ends.
        """
        label = 'PlayMessage'
        try:
            self.log.info("{} - Playing media: {} to channel: {}".format(
                label, media, session.uuid))
            return session.playback(
                media, timeout=self.settings.playback_timeout)
        except STEP_ERRORS as err:
            self.log.error("{} - Failed to play message. Reason: {}"
                           .format(label, err))
            return False

    def escalate_to_conference(self, session):
        """Move ``session`` into a new conference named after its uuid.
        """
        label = 'EscalateCallToConference'
        try:
            name = 'AdHocConference_{}'.format(session.uuid)
            return session.conference(name)
        except STEP_ERRORS as err:
            self.log.error(
                "{} - Failed to escalate call to conference. Reason: {}"
                .format(label, err))
            return None

    def join_conference(self, session, conference):
        label = 'JoinCallToConference'
        try:
            self.log.info(
                "{} - Joining call with Uuid: {} to conference: {}".format(
                    label, session.uuid, conference))
            session.conference(conference)
            self.log.info(
                "{} - Call with Uuid: {} is joined to conference: {}".format(
                    label, session.uuid, conference))
            return True
        except STEP_ERRORS as err:
            self.log.error(
                "{} - Failed to join call to conference. Reason: {}".format(
                    label, err))
            return False

    def start_recording(self, session):
        """Start recording ``session`` and return the recording id.
        """
        label = 'StartRecording'
        try:
            recording_id = utils.recording_id()
            path = self.settings.recording_path(recording_id)
            self.log.info(
                "{} - Starting call recording on the channel: {}".format(
                    label, session.uuid))
            session.start_record(path)
            self.log.info(
                "{} - Recording is started with name: {}, file path: {}"
                .format(label, recording_id, path))
            return recording_id
        except STEP_ERRORS as err:
            self.log.error("{} - Failed to start recording. Reason: {}"
                           .format(label, err))
            return None

    def terminate_channel(self, session):
        label = 'TerminateChannel'
        if session is None:
            self.log.info("{} - No need to terminate the channel".format(
                label))
            return False
        try:
            self.log.info("{} - Terminating channel: {}".format(
                label, session.uuid))
            return session.hangup()
        except STEP_ERRORS as err:
            self.log.error("{} - Failed to terminate channel. Reason: {}"
                           .format(label, err))
            return False
        finally:
            self.roles.pop(session.uuid, None)

    def terminate(self, bridge):
        """Hang up both legs of ``bridge`` which ends its conference.
        """
        self.log.info("Terminate - Terminating calls and the conference")
        self.terminate_channel(bridge.customer)
        self.terminate_channel(bridge.agent)
        bridge.customer = None
        bridge.agent = None

    def terminate_all(self):
        """Best effort hangup of every call this scenario has touched.
        """
        while self.bridges:
            self.terminate(self.bridges.pop(0))

    def watch(self, notifications=None):
        """Log channel state changes until a ``StopIteration`` is queued.

        Meant to be run in its own greenlet.
        """
        label = 'Watch'
        notifications = notifications or self.listener.notifications
        for ev in notifications:
            self.log.debug(
                "{} - ChannelEvent is received. ChannelCallUUID: {}, "
                "EventName: {}, ChannelState: {}, AnswerState: {}".format(
                    label, ev.uuid, ev.name, ev.channel_state,
                    ev.answer_state))
            role = self.roles.get(ev.uuid)
            if role and ev.name == 'CHANNEL_ANSWER':
                self.log.info("{} - {} answered the call".format(label, role))
            elif role and ev.name == 'CHANNEL_HANGUP':
                self.log.info("{} - {} hung up ({})".format(
                    label, role, ev.hangup_cause))

    def stop_watching(self):
        self.listener.notifications.put(StopIteration)
