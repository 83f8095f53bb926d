# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
'''
Test helper objects
'''
import re
from urllib.parse import quote
from gevent.event import Event
from greenswitch.esl import ESLEvent


def parse_headers(packet):
    '''Return the `Key: value` header lines of a sent packet as a dict
    '''
    headers = {}
    for line in packet.splitlines()[1:]:
        key, sep, value = line.partition(': ')
        if sep:
            headers[key] = value
    return headers


def plain_event(headers, body=''):
    '''Build an ``ESLEvent`` for a ``text/event-plain`` packet the same way
    greenswitch does on receipt: the outer packet headers are parsed first
    then the url encoded event text (including any body) on top of them.
    '''
    lines = ['{}: {}'.format(key, quote(str(value)))
             for key, value in headers.items()]
    if body:
        lines.append('Content-Length: {}'.format(len(body.encode())))
    text = '\n'.join(lines) + '\n\n' + body
    event = ESLEvent(
        'Content-Length: {}\nContent-Type: text/event-plain\n'.format(
            len(text.encode())))
    event.parse_data(text)
    return event


def reply(headers, body=None):
    '''Build the ``ESLEvent`` greenswitch returns from ``send()``. Only
    ``api/response`` replies carry a body, in ``.data``.
    '''
    event = ESLEvent('\n'.join(
        '{}: {}'.format(key, value) for key, value in headers.items()))
    if body is not None:
        event.data = body
    return event


class FakeESL(object):
    '''In-memory stand-in for a ``greenswitch.InboundESL`` connected to a
    well behaved FreeSWITCH which answers every call instantly.

    Events are delivered synchronously from inside ``send()``.
    '''
    def __init__(self, host, port=8021, password='ClueCon', timeout=5,
                 refuse=False):
        self.host = host
        self.port = port
        self.password = password
        self.timeout = timeout
        self.refuse = refuse
        self.connected = False
        self.sent = []
        self.event_handlers = {}
        # api command prefix -> reply body
        self.api_errors = {}
        # substrings of dialed urls which won't answer
        self.unreachable = set()
        # app name -> Application-Response for apps which complete
        self.complete_apps = {'playback': 'FILE PLAYED'}
        # app names whose sendmsg is rejected
        self.rejected_apps = set()
        self.hold_jobs = False

    def connect(self):
        if self.refuse:
            raise OSError(111, 'Connection refused')
        if self.password != 'ClueCon':
            raise ValueError('Invalid password.')
        self.connected = True

    def stop(self):
        self.connected = False

    def register_handle(self, name, handler):
        self.event_handlers.setdefault(name, []).append(handler)

    def unregister_handle(self, name, handler):
        self.event_handlers[name].remove(handler)

    def emit(self, name, data='', **headers):
        headers['Event-Name'] = name
        event = plain_event(headers, data)
        for handler in list(self.event_handlers.get(name, ())):
            handler(event)
        return event

    # inspection helpers
    def api_cmds(self):
        return [pkt[4:] for pkt in self.sent if pkt.startswith('api ')]

    def apps(self):
        '''Return (uuid, app, arg) for every executed app in order
        '''
        apps = []
        for pkt in self.sent:
            if pkt.startswith('sendmsg '):
                headers = parse_headers(pkt)
                apps.append((pkt.split()[1], headers['execute-app-name'],
                             headers['execute-app-arg']))
        return apps

    def originated(self):
        '''Return (origination uuid, dest url) for each originate in order
        '''
        calls = []
        for pkt in self.sent:
            if pkt.startswith('bgapi originate'):
                cmd = pkt.splitlines()[0]
                uuid = re.search(r'origination_uuid=([^,}]+)', cmd).group(1)
                url = cmd.split('}', 1)[1].split()[0]
                calls.append((uuid, url))
        return calls

    def send(self, data):
        if not self.connected:
            raise AssertionError("send() on a disconnected FakeESL")
        self.sent.append(data)
        first = data.splitlines()[0]

        if first.startswith('api '):
            cmd = first[4:]
            for prefix, body in self.api_errors.items():
                if cmd.startswith(prefix):
                    return reply({'Content-Type': 'api/response'}, body)
            return reply({'Content-Type': 'api/response'}, '+OK\n')

        if first.startswith('bgapi '):
            job_uuid = parse_headers(data)['Job-UUID']
            if first.startswith('bgapi originate') and not self.hold_jobs:
                self._originate(first, job_uuid)
            return reply({
                'Content-Type': 'command/reply',
                'Reply-Text': '+OK Job-UUID: {}'.format(job_uuid),
                'Job-UUID': job_uuid,
            })

        if first.startswith('sendmsg '):
            return self._sendmsg(first.split()[1], parse_headers(data))

        return reply({'Content-Type': 'command/reply',
                      'Reply-Text': '+OK'})

    def _originate(self, cmd, job_uuid):
        uuid = re.search(r'origination_uuid=([^,}]+)', cmd).group(1)
        dest = cmd.split('}', 1)[1].split()[0]
        if any(url in dest for url in self.unreachable):
            body = '-ERR NO_ANSWER\n'
        else:
            self.emit('CHANNEL_ANSWER', **{
                'Unique-ID': uuid,
                'Answer-State': 'answered',
                'Channel-State': 'CS_EXECUTE',
                'Call-Direction': 'outbound',
            })
            body = '+OK {}\n'.format(uuid)
        self.emit('BACKGROUND_JOB', data=body, **{'Job-UUID': job_uuid})

    def _sendmsg(self, uuid, headers):
        app = headers['execute-app-name']
        if app in self.rejected_apps:
            return reply({'Content-Type': 'command/reply',
                          'Reply-Text': '-ERR invalid session id'})
        if app in self.complete_apps:
            self.emit('CHANNEL_EXECUTE_COMPLETE', **{
                'Unique-ID': uuid,
                'Application': app,
                'Application-UUID': headers['Event-UUID'],
                'Application-Response': self.complete_apps[app],
            })
        return reply({'Content-Type': 'command/reply',
                      'Reply-Text': '+OK'})


class FakeOutboundSession(object):
    '''Quacks like a ``greenswitch.esl.OutboundSession``.
    '''
    def __init__(self, uuid):
        self.session_data = {'variable_uuid': uuid}
        self.calls = []

    @property
    def uuid(self):
        return self.session_data['variable_uuid']

    def connect(self):
        self.calls.append('connect')

    def myevents(self):
        self.calls.append('myevents')

    def linger(self):
        self.calls.append('linger')


class FakeServer(object):
    '''Quacks like a ``greenswitch.OutboundESLServer``.
    '''
    instances = []

    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.application = kwargs['application']
        self._stopped = Event()
        self.listening = False
        FakeServer.instances.append(self)

    def listen(self):
        self.listening = True
        self._stopped.wait()
        self.listening = False

    def stop(self):
        self._stopped.set()
