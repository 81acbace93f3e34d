import logging
import ssl

from linecast.conduit.socket_conduit import SocketConduit

logger = logging.getLogger(__name__)


class TLSConduit(SocketConduit):
    """
    A conduit over a socket that has completed a TLS handshake.

    TLS sockets cannot be peeked, and a readable TLS socket may only hold protocol records
    (e.g. session tickets) rather than data. The liveness probe therefore reads without blocking,
    which processes those records. Data the peer sends is not expected, and is discarded by the probe.
    """
    def __init__(self, sock: ssl.SSLSocket):
        super().__init__(sock)

    def _peer_closed(self):
        sock = self.sock
        if sock.pending():
            return False
        timeout = sock.gettimeout()
        sock.settimeout(0)
        try:
            data = sock.recv(1024)
        except ssl.SSLWantReadError:
            return False
        finally:
            sock.settimeout(timeout)
        if data:
            logger.debug("discarded %d bytes received from %s" % (len(data), str(self.remote_endpoint)))
        return not data

    def close(self):
        """ sends close_notify before shutting down the socket, without waiting for the peer's reply """
        sock = self.sock
        try:
            self._close_streams()
            sock.settimeout(0)
            sock.unwrap()
        except (OSError, ValueError) as e:
            # SSLWantReadError once close_notify is sent and the peer has not answered yet
            logger.debug("TLS shutdown with %s: %s" % (str(self.remote_endpoint), e))
        super().close()

    @property
    def cipher(self):
        return self.sock.cipher()
