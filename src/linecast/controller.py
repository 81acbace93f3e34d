"""
Runs a broadcast on a background thread, and lets the host request it to stop.

The broadcast runs on a single daemon thread. Connection events are queued on that thread
and delivered to listeners when the host calls publish(), so a listener never holds up the broadcast.
"""
import logging
import threading

from linecast.broadcast import BroadcastLoop
from linecast.config.config import BroadcastConfig
from linecast.connector.socketconn import SocketConnection
from linecast.lines import FileLineSource
from linecast.support.events import QueuedEventSource
from linecast.support.retry_strategy import FixedRetryStrategy

logger = logging.getLogger(__name__)


def log_fatal_error(e):
    logger.error("broadcast failed: %s" % e, exc_info=e)


class BroadcastTask:
    """
    Runs a BroadcastLoop on a background thread.

    :param loop     the BroadcastLoop to run
    :param on_fatal_error   called on the background thread with any exception that ends the broadcast.
        It decides whether the process should exit; the task does not.
    """

    def __init__(self, loop: BroadcastLoop, on_fatal_error=log_fatal_error, events=None, log=logger):
        self.loop = loop
        self.on_fatal_error = on_fatal_error
        self.events = events if events is not None else QueuedEventSource()
        self.stop_event = threading.Event()
        self.background_thread = None
        self.fatal_error = None
        self.logger = log

    def start(self):
        """ Starts the background thread, unless already started. """
        if self.background_thread is None:
            t = threading.Thread(target=self._run, name='linecast-broadcast')
            t.daemon = True
            self.background_thread = t
            t.start()
        return self

    def _run(self):
        connection = self.loop.connection
        connection.events.add(self.events.fire)
        try:
            with connection:
                self.loop.run(self.stop_event, self._fatal_error)
        finally:
            connection.events.remove(self.events.fire)
            self.logger.info("broadcast thread exiting")

    def _fatal_error(self, e):
        self.fatal_error = e
        self.on_fatal_error(e)

    def running(self):
        t = self.background_thread
        return t is not None and t.is_alive()

    def request_stop(self):
        """ asks the broadcast to stop. The broadcast notices at its next check. """
        self.stop_event.set()

    def await_stop(self, timeout=None):
        """
        Waits for the background thread to finish.
        :param timeout  seconds to wait, or None to wait indefinitely.
        :return: True if the broadcast has finished, False if it is still running after the timeout.
        """
        t = self.background_thread
        if t is not None and t is not threading.current_thread():
            t.join(timeout)
        return not self.running()

    def stop(self, timeout=None):
        self.request_stop()
        return self.await_stop(timeout)

    def publish(self):
        """ delivers queued connection events to the listeners, on the calling thread. """
        self.events.publish()


def create_task(config: BroadcastConfig, listeners=(), on_fatal_error=None) -> BroadcastTask:
    """ builds the connection, line source and loop described by a validated configuration. """
    connection = SocketConnection(config.endpoint, config.credential_handle, config.connect_timeout)
    logger.info("broadcasting %s to %s%s" % (config.file, config.endpoint,
                                            " over TLS" if connection.encrypted else ""))
    lines = FileLineSource(config.file, config.encoding)
    loop = BroadcastLoop(connection, lines, config.delay, config.repeat, config.include_terminator,
                         config.terminator, FixedRetryStrategy(config.retry_period))
    task = BroadcastTask(loop, on_fatal_error or log_fatal_error)
    for listener in listeners:
        task.events.add(listener)
    return task


def start(config: BroadcastConfig, listeners=(), on_fatal_error=None) -> BroadcastTask:
    """ starts broadcasting as described by the configuration, and returns the running task. """
    return create_task(config, listeners, on_fatal_error).start()
