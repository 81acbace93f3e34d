import logging
import socket

from linecast.conduit.base import Conduit
from linecast.conduit.socket_conduit import SocketConduit
from linecast.conduit.tls_conduit import TLSConduit
from linecast.connector.base import ManagedConnection, ConnectorError
from linecast.support.mixins import CommonEqualityMixin

logger = logging.getLogger(__name__)


class TCPEndpoint(CommonEqualityMixin):
    """
    Describes a TCP server endpoint.
    At least one of name or ip_address should be given. If both are given, the ip_address is used
    to connect.
    """
    def __init__(self, hostname, ip_address, port, family=socket.AF_INET):
        self.hostname = hostname
        self.ip_address = ip_address
        self.port = port
        self.family = family

    @property
    def address(self):
        """ the address tuple passed to socket.connect() """
        return (self.ip_address or self.hostname), self.port

    def key(self):
        """
        >>> TCPEndpoint(None, 'ipaddr', 55).key()
        'ipaddr:55'
        >>> TCPEndpoint('name', 'ipaddr', 55).key()
        'name:55'
        """
        return str(self.hostname or self.ip_address) + ':' + str(self.port)

    def __str__(self):
        return self.key()


def resolve_endpoint(host, port) -> TCPEndpoint:
    """
    Resolves a host name or address to the first stream endpoint found.
    Raises socket.gaierror when the name cannot be resolved.
    """
    infos = socket.getaddrinfo(host, port, type=socket.SOCK_STREAM)
    family, _, _, _, sockaddr = infos[0]
    return TCPEndpoint(host, sockaddr[0], port, family)


class SocketConnection(ManagedConnection):
    """
    A managed connection that sends data over a TCP socket, optionally encrypted with TLS.

    :param endpoint The TCPEndpoint to connect to.
    :param credential When given, the socket is upgraded to TLS using this credential after connecting.
    :param connect_timeout how long to wait for the TCP connection to be established, in seconds.
    """
    def __init__(self, endpoint: TCPEndpoint, credential=None, connect_timeout=5, log=logger):
        super().__init__(log)
        self._endpoint = endpoint
        self._credential = credential
        self._connect_timeout = connect_timeout

    @property
    def endpoint(self):
        return self._endpoint

    @property
    def credential(self):
        return self._credential

    @property
    def encrypted(self):
        return self._credential is not None

    def _connect(self) -> Conduit:
        endpoint = self._endpoint
        sock = socket.socket(endpoint.family, socket.SOCK_STREAM)
        try:
            sock.settimeout(self._connect_timeout)
            sock.connect(endpoint.address)
            self.logger.info("opened socket to %s" % endpoint)
            return SocketConduit(sock)
        except socket.error as e:
            sock.close()
            self.logger.debug("error opening socket to %s: %s" % (endpoint, e))
            raise ConnectorError("unable to connect to %s: %s" % (endpoint, e)) from e

    def _secure(self, conduit: SocketConduit) -> Conduit:
        """ performs the TLS handshake when a credential was given. The connect timeout also bounds the handshake. """
        if self._credential is None:
            conduit.target.settimeout(None)
            return conduit
        try:
            sock = self._credential.wrap(conduit.target, self._endpoint.hostname)
        except socket.error as e:
            raise ConnectorError("TLS handshake with %s failed (%s)" % (self._endpoint, e)) from e
        sock.settimeout(None)
        conduit = TLSConduit(sock)
        self.logger.info("TLS established with %s (%s)" % (self._endpoint, conduit.cipher[0]))
        return conduit

    def _disconnect(self):
        self.logger.info("closing socket to %s" % self._endpoint)
