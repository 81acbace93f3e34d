import logging
from abc import abstractmethod
from enum import Enum

from linecast.conduit.base import Conduit
from linecast.support.events import EventSource

logger = logging.getLogger(__name__)


class ConnectorError(Exception):
    """ Indicates an error condition with a connection. """


class ConnectionState(Enum):
    DISCONNECTED = 'disconnected'
    CONNECTING = 'connecting'
    CONNECTED = 'connected'
    DISCONNECTING = 'disconnecting'


class ConnectorEvent:
    """ base class for connector events. """
    def __init__(self, connector):
        self.connector = connector


class ConnectorConnectedEvent(ConnectorEvent):
    """ The transport connected to the remote endpoint. Fired before any TLS handshake. """
    def __init__(self, connector, remote_endpoint):
        super().__init__(connector)
        self.remote_endpoint = remote_endpoint


class ConnectorDisconnectingEvent(ConnectorEvent):
    """ The connector is about to shut down the connection. It is still connected. """


class DataSentEvent(ConnectorEvent):
    """ The data was written to the remote endpoint. """
    def __init__(self, connector, data, remote_endpoint):
        super().__init__(connector)
        self.data = data
        self.remote_endpoint = remote_endpoint


class ConnectorErrorEvent(ConnectorEvent):
    """ base class for events that report an error """
    def __init__(self, connector, error):
        super().__init__(connector)
        self.error = error


class ConnectionErrorEvent(ConnectorErrorEvent):
    """ The connection could not be established. """


class SendErrorEvent(ConnectorErrorEvent):
    """ Data could not be written to a connection that was believed to be open. """


class ManagedConnection:
    """
    Maintains zero or one open conduit to a fixed endpoint.

    Faults from the transport never propagate out of connect(), send() or disconnect().
    They are converted into a boolean result and/or an event fired from `events`.
    Events are fired synchronously, on the thread calling the operation.

    Subclasses provide the transport via the template methods _connect() and _secure().

    Use as a context manager, or call close(), to release the conduit on every exit path.
    """

    def __init__(self, log=logger):
        self.events = EventSource()
        self.logger = log
        self._conduit = None
        self._state = ConnectionState.DISCONNECTED

    @property
    @abstractmethod
    def endpoint(self):
        """ the endpoint that this connection reaches out to """
        raise NotImplementedError

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        """
        Determines if the conduit is open, by probing the transport rather than trusting the
        cached state.
        """
        conduit = self._conduit
        return conduit is not None and self._state is ConnectionState.CONNECTED and conduit.open

    def is_connected(self) -> bool:
        return self.connected

    @property
    def remote_endpoint(self):
        conduit = self._conduit
        return conduit.remote_endpoint if conduit is not None else None

    def connect(self) -> bool:
        """
        Connects to the endpoint, unless already connected.
        :return: True if the connection is open, False if it could not be established.
        A ConnectionErrorEvent describing the cause is fired on failure.
        """
        if self.connected:
            return True

        self._release()
        self._state = ConnectionState.CONNECTING
        try:
            self._conduit = self._connect()
            self.events.fire(ConnectorConnectedEvent(self, self._conduit.remote_endpoint))
            self._conduit = self._secure(self._conduit)
            self._state = ConnectionState.CONNECTED
            return True
        except Exception as e:
            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.debug("Unable to connect to %s" % str(self.endpoint), exc_info=True)
            self._release()
            self.events.fire(ConnectionErrorEvent(self, e))
        return False

    def send(self, data: bytes):
        """
        Writes all the given bytes to the conduit. Nothing is written when not connected.
        A failed write fires a SendErrorEvent. The connection is not reopened here, the next
        call to connect() does that.
        """
        if data is None:
            raise ValueError("data is required")
        try:
            if self.connected:
                output = self._conduit.output
                output.write(data)
                output.flush()
                self.events.fire(DataSentEvent(self, data, self._conduit.remote_endpoint))
        except Exception as e:
            self.logger.debug("error sending to %s: %s" % (str(self.endpoint), e))
            self.events.fire(SendErrorEvent(self, e))

    def disconnect(self):
        """
        Shuts down the connection if it is open, firing a ConnectorDisconnectingEvent first.
        Calling this when not connected releases any stale conduit and returns quietly.
        """
        if self.connected:
            self.events.fire(ConnectorDisconnectingEvent(self))
            self._state = ConnectionState.DISCONNECTING
            self._disconnect()
        self._release()

    def close(self):
        """ releases the conduit without firing events. """
        self._release()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _release(self):
        conduit = self._conduit
        self._conduit = None
        self._state = ConnectionState.DISCONNECTED
        if conduit is not None:
            conduit.close()

    @abstractmethod
    def _connect(self) -> Conduit:
        """ Template method for subclasses to open the transport.
            If connection is not possible, an exception should be thrown
        """
        raise NotImplementedError

    def _secure(self, conduit: Conduit) -> Conduit:
        """ Template method to upgrade a freshly opened conduit, e.g. with a TLS handshake.
            The returned conduit replaces the given one.
        """
        return conduit

    def _disconnect(self):
        """ perform any actions needed on orderly disconnection, before the conduit is closed. """
