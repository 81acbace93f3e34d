"""
Broadcast a text file over TCP, line by line with a delay.
"""
import argparse
import logging
import sys
import traceback

from linecast.config.config import ConfigError, configure
from linecast.console import EventLogger
from linecast.controller import start
from linecast.credentials import CredentialError

logger = logging.getLogger(__name__)

log_format = '[%(asctime)s] %(message)s'
log_date_format = '%Y-%m-%dT%H:%M:%S'

# how often the main thread delivers queued events, in seconds
publish_interval = 0.2


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog='linecast', description=__doc__.strip())
    required = parser.add_argument_group('required')
    required.add_argument('-f', '--file', help='path to the text file (lines separated by CR/LF)')
    required.add_argument('-p', '--port', type=int, help='TCP port of the broadcast destination')
    parser.add_argument('-a', '--address', dest='host',
                        help='IP address (or host name) of the broadcast destination (default=127.0.0.1)')
    parser.add_argument('-r', '--repeat', action='store_true', default=None,
                        help='start again immediately when the file broadcast is finished')
    parser.add_argument('-d', '--delay', type=float,
                        help='number of seconds to wait between lines (default=2)')
    parser.add_argument('-i', '--include-line-break', dest='include_terminator', action='store_true', default=None,
                        help='include line breaks (CR/LF) in the broadcast')
    parser.add_argument('-s', '--certificate', dest='credential',
                        help='name or path of the certificate to secure the connection with TLS')
    parser.add_argument('-c', '--config', help='configuration file')
    parser.add_argument('-v', '--verbose', action='store_true', help='log debug information')
    return parser.parse_args(argv)


def overrides(args):
    """ the configuration sections given on the command line. Options not given are left out. """
    broadcast = {k: getattr(args, k) for k in ('file', 'port', 'host', 'repeat', 'delay', 'include_terminator')
                 if getattr(args, k) is not None}
    tls = {'credential': args.credential} if args.credential is not None else {}
    return {'broadcast': broadcast, 'tls': tls}


def configure_logging(verbose=False):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format=log_format, datefmt=log_date_format)


def run(config):
    """
    broadcasts until finished, or interrupted with Ctrl+C.
    :return: the process exit code
    """
    fatal_errors = []
    task = start(config, [EventLogger()], on_fatal_error=fatal_errors.append)
    logger.info("Press Ctrl+C at any time to quit...")
    try:
        while not task.await_stop(publish_interval):
            task.publish()
    except KeyboardInterrupt:
        logger.info("Stopping...")
        task.request_stop()
        if not task.await_stop(config.stop_timeout):
            logger.warning("broadcast did not stop within %s seconds" % config.stop_timeout)
    task.publish()

    if fatal_errors:
        e = fatal_errors[0]
        logger.error("Error:      %s" % e)
        logger.error("Details:    %s" % ''.join(traceback.format_exception(type(e), e, e.__traceback__)))
        return 1
    logger.info("Goodbye!")
    return 0


def main(argv=None):
    args = parse_args(argv)
    configure_logging(args.verbose)
    try:
        config = configure(args.config, overrides(args))
    except (ConfigError, CredentialError) as e:
        logger.error("%s" % e)
        return 2
    return run(config)


if __name__ == '__main__':
    sys.exit(main())
