import logging

from linecast.connector.base import ConnectorConnectedEvent, ConnectorDisconnectingEvent, DataSentEvent, \
    ConnectionErrorEvent, SendErrorEvent

logger = logging.getLogger(__name__)


def format_endpoint(endpoint):
    """
    >>> format_endpoint(('127.0.0.1', 8000))
    '127.0.0.1:8000'
    >>> format_endpoint(None)
    'None'
    """
    if isinstance(endpoint, tuple) and len(endpoint) >= 2:
        return '%s:%s' % endpoint[:2]
    return str(endpoint)


class EventLogger:
    """
    Reports connection events as log records.
    Register an instance as an event listener.
    """
    def __init__(self, log=logger):
        self.logger = log

    def __call__(self, event):
        handler = getattr(self, '_' + type(event).__name__, None)
        if handler is not None:
            handler(event)
        else:
            self.logger.debug("event %s" % event)

    def _ConnectorConnectedEvent(self, event: ConnectorConnectedEvent):
        self.logger.info("Connected to %s" % format_endpoint(event.remote_endpoint))

    def _ConnectorDisconnectingEvent(self, event: ConnectorDisconnectingEvent):
        self.logger.info("Disconnecting...")

    def _DataSentEvent(self, event: DataSentEvent):
        text = event.data.decode('ascii', errors='replace').rstrip('\r\n')
        self.logger.info("Sent: %s [%d bytes]" % (text, len(event.data)))

    def _ConnectionErrorEvent(self, event: ConnectionErrorEvent):
        self.logger.warning("Server unreachable (%s)." % event.error)

    def _SendErrorEvent(self, event: SendErrorEvent):
        self.logger.warning("Send failed (%s)." % event.error)
