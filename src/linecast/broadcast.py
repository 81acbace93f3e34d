import logging
import threading

from linecast.connector.base import ManagedConnection
from linecast.lines import transmission_unit
from linecast.support.retry_strategy import FixedRetryStrategy, RetryStrategy, default_retry_period

logger = logging.getLogger(__name__)


class BroadcastLoop:
    """
    Sends the lines from a line source over a managed connection, one at a time,
    pausing `delay` seconds after each line.

    The connection is (re)established before every line, so a dropped connection or a failed send
    does not end the broadcast. Connection and send failures are reported by the connection's events.

    Cancellation is cooperative. The cancel event is checked while waiting for the connection,
    after each line is sent, and while pausing between lines.

    :param connection   the ManagedConnection to send on
    :param lines        an iterable of str, iterated once per cycle. Each iteration starts from the first line.
    :param delay        seconds to pause after each line. 0 sends the lines back to back.
    :param repeat       when True, the lines are sent again from the start each time they are exhausted.
    :param terminator   appended to each line when include_terminator is True.
    :param retry_strategy   how long to wait between connection attempts
    """

    def __init__(self, connection: ManagedConnection, lines, delay=2, repeat=False, include_terminator=False,
                 terminator='\r\n', retry_strategy: RetryStrategy=None, log=logger):
        if delay < 0:
            raise ValueError("delay must not be negative: %s" % delay)
        self.connection = connection
        self.lines = lines
        self.delay = delay
        self.repeat = repeat
        self.terminator = terminator if include_terminator else None
        self.retry_strategy = retry_strategy or FixedRetryStrategy(default_retry_period)
        self.logger = log

    def run(self, cancel: threading.Event, on_fatal_error):
        """
        Broadcasts until the lines are exhausted (and repeat is off) or cancel is set,
        then disconnects.
        Any unexpected exception is passed to on_fatal_error, and the broadcast ends.
        """
        try:
            self._cycles(cancel)
            self.connection.disconnect()
        except Exception as e:
            on_fatal_error(e)

    def _cycles(self, cancel):
        while True:
            if not self.wait_for_connection(cancel):
                return
            self.logger.info("starting broadcast of %s" % self.lines)
            sent = self._cycle(cancel)
            if sent is None:
                return
            self.logger.info("finished broadcast of %s" % self.lines)
            if cancel.is_set() or not self.repeat:
                return
            if not sent:
                # the source has emptied since the broadcast started
                self.logger.warning("no lines to send from %s" % self.lines)
                cancel.wait(self.retry_strategy())

    def _cycle(self, cancel):
        """
        Sends each line once.
        :return: the number of lines sent, or None if the broadcast was cancelled while waiting for the connection.
        """
        sent = 0
        for line in self.lines:
            data = transmission_unit(line, self.terminator)
            if not self.wait_for_connection(cancel):
                return None
            self.connection.send(data)
            sent += 1
            if cancel.is_set():
                break
            if self.delay > 0:
                cancel.wait(self.delay)
        return sent

    def wait_for_connection(self, cancel):
        """
        Tries to connect until connected or cancelled, pausing between attempts.
        :return: True when connected, False when cancelled.
        """
        connection = self.connection
        while not cancel.is_set():
            if connection.connect():
                return True
            cancel.wait(self.retry_strategy())
        return False


def broadcast(connection, lines, delay, repeat, include_terminator, cancel, on_fatal_error, **kwargs):
    """ Runs a BroadcastLoop on the calling thread. kwargs are passed to the BroadcastLoop constructor."""
    BroadcastLoop(connection, lines, delay, repeat, include_terminator, **kwargs).run(cancel, on_fatal_error)
