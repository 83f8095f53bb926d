# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""
Command wrappers and helpers
"""

_sendmsg = """\
sendmsg {uuid}
call-command: execute
execute-app-name: {app}
execute-app-arg: {arg}
loops: {loops}
event-lock: {lock}
Event-UUID: {event_uuid}"""


def build_originate_cmd(dest_url, uuid_str,
                        # explicit app + args
                        app_name='park', app_arg_str='',
                        timeout=30,
                        ignore_early_media=False,
                        **kwargs):
    '''Return a formatted `originate` command string conforming
    to the syntax dictated by mod_commands of the form:

    originate <call url> &<application_name>(<app_args>)

    Parameters
    ----------
    dest_url : str
        full call url including endpoint and profile, for example
        ``sofia/external/4448@10.0.0.1``
    uuid_str : str
        uuid to assign to the new channel via ``origination_uuid``
    timeout : int
        seconds to ring before giving up (``originate_timeout``)
    ignore_early_media : bool
        whether to consider the call answered on early media

    Returns
    -------
    originate command : string
    '''
    params = {
        'origination_uuid': uuid_str,
        'originate_timeout': timeout,
        'ignore_early_media': 'true' if ignore_early_media else 'false',
    }
    # override with user settings
    params.update(kwargs)

    pairs = ['='.join(map(str, pair)) for pair in params.items()]
    app_part = '&{}({})'.format(app_name, app_arg_str)

    return 'originate {{{params}}}{call_url} {app_part}'.format(
        params=','.join(pairs), call_url=dest_url, app_part=app_part)


def build_sendmsg(uuid, app, arg, event_uuid, loops=1, lock=False):
    '''Return a `sendmsg` execute packet for running dialplan ``app`` on the
    channel ``uuid``. ``event_uuid`` is echoed back by FreeSWITCH as the
    ``Application-UUID`` of the matching ``CHANNEL_EXECUTE_*`` events.
    '''
    return _sendmsg.format(
        uuid=uuid, app=app, arg=arg, loops=loops,
        lock='true' if lock else 'false', event_uuid=event_uuid)
