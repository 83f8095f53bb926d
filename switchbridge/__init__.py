# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
switchbridge: call center bridge scenarios driven over the FreeSWITCH
event socket.

Licensed under the MPL 2.0 license (see `LICENSE` file)
"""
from .utils import get_logger, log_to_stderr, ESLError, ConfigurationError
from .config import Settings
from .connection import get_connection, ConnectionError
from .handlers import EventListener
from .models import Session, Job, ChannelEvent
from .scenario import BridgeScenario, Bridge
from .serve import CallReceiver

__package__ = 'switchbridge'
__version__ = '0.1.0'
__author__ = ('Sangoma Technologies', 'qa@eng.sangoma.com')
