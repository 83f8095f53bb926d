# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
handy utilities
"""
import sys
import time
import logging
import uuid as mod_uuid

import colorlog
import gevent


class ESLError(Exception):
    """An error pertaining to the connection"""


class ConfigurationError(Exception):
    """Config error"""


class CommandError(ESLError):
    """Console command error"""


# fs-like log format
LOG_FORMAT = ("%(asctime)s [%(levelname)s] %(name)s %(filename)s:%(lineno)d "
              ": %(message)s")
DATE_FORMAT = '%b %d %H:%M:%S'
FS_COLORS = {
    'CRITICAL': 'bold_red',
    'ERROR': 'red',
    'WARNING': 'purple',
    'INFO': 'green',
    'DEBUG': 'yellow',
}
_log = None


def get_root_log():
    '''Get the root switchbridge log
    '''
    global _log
    if not _log:
        _log = logging.getLogger('switchbridge')
        _log.debug("creating new logger")
        _log.propagate = True
    return _log


def get_logger(name=None):
    '''Return a sub-log for `name` or the pkg log by default
    '''
    log = get_root_log()
    return log.getChild(name) if name else log


def log_to_stderr(level=None):
    '''Turn on logging and add a coloured handler which writes to stderr
    '''
    log = get_root_log()
    if level:
        log.setLevel(level)
    if not any(
        handler.stream == sys.stderr for handler in log.handlers
        if getattr(handler, 'stream', None)
    ):
        handler = logging.StreamHandler()
        formatter = colorlog.ColoredFormatter(
            "%(log_color)s" + LOG_FORMAT,
            datefmt=DATE_FORMAT,
            log_colors=FS_COLORS
        )
        handler.setFormatter(formatter)
        log.addHandler(handler)
    return log


def pstr(self):
    """Pretty str repr of connection-like instances
    """
    return '{}@{}'.format(
        type(self).__name__,
        getattr(self, 'server', getattr(self, 'host', 'unknown-host'))
    )


def uuid():
    """Return a new uuid4 string
    """
    return str(mod_uuid.uuid4())


def recording_id():
    """Return a new dash-less uuid suitable as a recording file name
    """
    return mod_uuid.uuid4().hex


def last_line(text):
    """Return the last non-empty line of `text` or the empty string
    """
    lines = [line for line in (text or '').splitlines() if line.strip()]
    return lines[-1].strip() if lines else ''


def is_error(text):
    """Return bool indicating whether a FreeSWITCH reply reports a failure
    """
    return last_line(text).startswith('-ERR')


def waitwhile(predicate, timeout=float('inf'), period=0.1):
    """Cooperatively block until `predicate` evaluates to `False`.

    :param predicate: predicate function
    :type predicate: function
    :param float timeout: time to wait in seconds for predicate to eval False
    :param float period: poll loop sleep period in seconds
    :return: ``False`` if `timeout` expired first else ``True``
    """
    start = time.time()
    while predicate():
        gevent.sleep(period)
        if time.time() - start > timeout:
            return False
    return True
