# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
import io
import os
from contextlib import contextmanager

import click
import gevent
from gevent.socket import wait_read

from . import config, utils
from .connection import get_connection, ConnectionError
from .handlers import EventListener
from .scenario import BridgeScenario
from .serve import CallReceiver

_settings_options = [
    click.option('--host', default=config.DEFAULT_HOST,
                 envvar='SWITCHBRIDGE_HOST',
                 help='Hostname or IP address of the FreeSWITCH server'),
    click.option('--port', default=config.DEFAULT_PORT, type=int,
                 envvar='SWITCHBRIDGE_PORT',
                 help='Event socket port on the FreeSWITCH server'),
    click.option('--password', default=config.DEFAULT_PASSWORD,
                 envvar='SWITCHBRIDGE_PASSWORD',
                 help='Password to use for ESL authentication'),
    click.option('--agent-uri', default=None,
                 envvar='SWITCHBRIDGE_AGENT_URI',
                 help='Call URI dialed as the agent '
                 '(default sofia/external/{}@<host>)'
                 .format(config.AGENT_EXTENSION)),
    click.option('--welcome-sound', default=config.WELCOME_SOUND,
                 envvar='SWITCHBRIDGE_WELCOME_SOUND',
                 help='Sound file played to the customer'),
    click.option('--recording-dir', default=config.RECORDING_DIR,
                 envvar='SWITCHBRIDGE_RECORDING_DIR',
                 help='Directory on the server to store recordings in'),
    click.option('--originate-timeout', default=config.ORIGINATE_TIMEOUT,
                 type=int, envvar='SWITCHBRIDGE_ORIGINATE_TIMEOUT',
                 help='Seconds to ring a dialed party before giving up'),
    click.option('--playback-timeout', default=config.PLAYBACK_TIMEOUT,
                 type=float, envvar='SWITCHBRIDGE_PLAYBACK_TIMEOUT',
                 help='Seconds to wait for the welcome message to finish'),
    click.option('--ignore-early-media/--no-ignore-early-media',
                 default=False, envvar='SWITCHBRIDGE_IGNORE_EARLY_MEDIA',
                 help='Consider dialed parties answered on early media'),
    click.option('-l', '--loglevel', default='INFO',
                 envvar='SWITCHBRIDGE_LOGLEVEL',
                 help='Set the Python logging level'),
]


def settings_options(func):
    for option in reversed(_settings_options):
        func = option(func)
    return func


def make_settings(loglevel=None, **kwargs):
    """Build ``Settings`` from CLI options turning config errors into usage
    errors.
    """
    try:
        return config.Settings(**kwargs)
    except utils.ConfigurationError as err:
        raise click.BadParameter(str(err))


def wait_for_quit(key='q', stream=None):
    """Block the calling greenlet until a line starting with ``key`` (or
    EOF) is read from ``stream``.
    """
    stream = stream or click.get_text_stream('stdin')
    try:
        fd = stream.fileno()
    except (AttributeError, io.UnsupportedOperation):
        fd = None
    if fd is not None and not os.isatty(fd):
        fd = None

    while True:
        if fd is not None:
            wait_read(fd)  # let other greenlets run until input arrives
        line = stream.readline()
        if not line or line.strip().lower().startswith(key):
            return


@contextmanager
def bridge_scenario(settings):
    """Connect to the server and deliver a ``BridgeScenario`` whose calls
    are all terminated on exit.
    """
    log = utils.get_logger()
    con = get_connection(settings.host, settings.port, settings.password)
    listener = EventListener(con)
    try:
        listener.connect()
    except ConnectionError as err:
        raise click.ClickException(str(err))

    scenario = BridgeScenario(listener, settings)
    watcher = gevent.spawn(scenario.watch)
    try:
        yield scenario
    finally:
        log.info("Cleaning up resources")
        scenario.terminate_all()
        scenario.stop_watching()
        watcher.join(1)
        listener.disconnect()


@click.group()
def cli():
    pass


@cli.command()
@settings_options
@click.option('--customer-uri', default=None,
              envvar='SWITCHBRIDGE_CUSTOMER_URI',
              help='Call URI dialed as the customer '
              '(default sofia/external/{}@<host>)'
              .format(config.CUSTOMER_EXTENSION))
def outbound(**kwargs):
    """Dial a customer and bridge them with an agent in a conference.
    """
    utils.log_to_stderr(kwargs['loglevel'].upper())
    settings = make_settings(**kwargs)

    with bridge_scenario(settings) as scenario:
        runner = gevent.spawn(scenario.run_outbound)
        click.echo("Press 'q' to quit ...")
        try:
            wait_for_quit()
        except KeyboardInterrupt:
            pass
        runner.kill()


@cli.command()
@settings_options
@click.option('--dial-in', default=config.DIAL_IN_EXTENSION,
              envvar='SWITCHBRIDGE_DIAL_IN',
              help='Extension routed to this listener by the dialplan')
@click.option('--listen-address', default=config.LISTEN_ADDRESS,
              envvar='SWITCHBRIDGE_LISTEN_ADDRESS',
              help='Local address to accept outbound socket connections on')
@click.option('--listen-port', default=config.LISTEN_PORT, type=int,
              envvar='SWITCHBRIDGE_LISTEN_PORT',
              help='Local port to accept outbound socket connections on')
@click.option('--max-connections', default=10, type=int,
              envvar='SWITCHBRIDGE_MAX_CONNECTIONS',
              help='Maximum number of concurrent customer calls')
def inbound(**kwargs):
    """Answer customer calls and bridge each with an agent in a conference.
    """
    utils.log_to_stderr(kwargs['loglevel'].upper())
    settings = make_settings(**kwargs)

    with bridge_scenario(settings) as scenario:
        receiver = CallReceiver(
            scenario,
            address=settings.listen_address,
            port=settings.listen_port,
            max_connections=settings.max_connections,
        )
        receiver.start()
        try:
            click.echo("Dial {} as customer".format(settings.dial_in))
            click.echo("You can press 'q' to quit at any time ...")
            wait_for_quit()
        except KeyboardInterrupt:
            pass
        finally:
            receiver.stop()
