# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
Receive customer calls handed to us by FreeSWITCH's outbound socket mode.

The server must route the dial-in extension to this process with a dialplan
entry like::

    <extension name="switchbridge">
      <condition field="destination_number" expression="^6789$">
        <action application="socket" data="<our ip>:8084 async full"/>
      </condition>
    </extension>
"""
from functools import partial

import gevent
from greenswitch import OutboundESLServer
from greenswitch.esl import OutboundSessionHasGoneAway

from . import utils
from .scenario import STEP_ERRORS


class CustomerCall(object):
    """Outbound socket application run once per received call.

    Hands the call to the receiver's scenario and keeps the socket open
    until the customer hangs up, since FreeSWITCH moves on in the dialplan
    (and usually hangs up) as soon as the socket closes.
    """
    def __init__(self, session, receiver):
        self.session = session
        self.receiver = receiver
        self.log = receiver.log

    def run(self):
        try:
            self.safe_run()
        except (OutboundSessionHasGoneAway,) + STEP_ERRORS as err:
            self.log.error(
                "Failed to handle the call. Reason: {}".format(err))

    def safe_run(self):
        self.session.connect()
        self.session.myevents()
        self.session.linger()

        scenario = self.receiver.scenario
        customer = scenario.listener.get_session(self.session.uuid)
        self.log.info("Received call with Uuid: {}".format(customer.uuid))
        bridge = scenario.run_inbound(customer)

        if bridge.customer is not None:
            utils.waitwhile(
                lambda: not customer.hungup and self.receiver.running,
                period=self.receiver.poll_period)
            self.log.info("Customer call {} is over".format(customer.uuid))
            # on shutdown the remaining bridges are torn down by the caller
            if self.receiver.running and bridge in scenario.bridges:
                scenario.bridges.remove(bridge)
                scenario.terminate(bridge)


class CallReceiver(object):
    """Listen for switch initiated event socket connections and run the
    inbound scenario for each one.
    """
    def __init__(self, scenario, address='0.0.0.0', port=8084,
                 max_connections=10, poll_period=0.5,
                 server_factory=OutboundESLServer):
        self.scenario = scenario
        self.address = address
        self.port = port
        self.host = '{}:{}'.format(address, port)
        self.max_connections = max_connections
        self.poll_period = poll_period
        self.log = utils.get_logger(utils.pstr(self))
        self._server_factory = server_factory
        self._server = None
        self._greenlet = None

    @property
    def running(self):
        return self._server is not None

    def start(self):
        """Start listening in a background greenlet.
        """
        if self.running:
            return
        self.log.info("Listening for calls on {}".format(self.host))
        self._server = self._server_factory(
            bind_address=self.address,
            bind_port=self.port,
            application=partial(CustomerCall, receiver=self),
            max_connections=self.max_connections,
        )
        self._greenlet = gevent.spawn(self._server.listen)

    def stop(self, timeout=2):
        if not self.running:
            return
        self.log.info("Stopping call receiver on {}".format(self.host))
        server, self._server = self._server, None
        server.stop()
        if self._greenlet is not None:
            self._greenlet.join(timeout)
            self._greenlet.kill()
            self._greenlet = None
