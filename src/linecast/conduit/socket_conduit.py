import logging
import select
import socket

from linecast.conduit import base

logger = logging.getLogger(__name__)


class SocketConduit(base.Conduit):
    """
    A conduit that provides communication via a connected socket.
    The streams are created on first use, so the socket can still be handed over to
    another conduit (e.g. to be wrapped for TLS) before any I/O takes place.
    :param sock The open, connected socket
    """
    def __init__(self, sock: socket.socket):
        """
        :param sock: the client socket that represents the connection
        :type sock: socket
        """
        self.sock = sock
        self._remote_endpoint = sock.getpeername()
        self.write = None

    @property
    def open(self) -> bool:
        """
        Probes the socket without blocking. A socket that is readable but has no data
        waiting has been closed by the peer, and is reported as not open.
        """
        sock = self.sock
        if sock.fileno() < 0:
            return False
        try:
            readable, _, _ = select.select([sock], [], [], 0)
            return not readable or not self._peer_closed()
        except (OSError, ValueError) as e:
            logger.debug("liveness probe on %s failed: %s" % (str(self._remote_endpoint), e))
            return False

    def _peer_closed(self):
        """ called when the socket is readable. Zero bytes waiting means the peer has closed. """
        return len(self.sock.recv(1, socket.MSG_PEEK)) == 0

    @property
    def target(self):
        return self.sock

    @property
    def remote_endpoint(self):
        return self._remote_endpoint

    @property
    def output(self):
        if self.write is None:
            self.write = self.sock.makefile('wb')
        return self.write

    def _close_streams(self):
        try:
            if self.write is not None:
                self.write.close()
        finally:
            self.write = None

    def close(self):
        try:
            self._close_streams()
            self.sock.shutdown(socket.SHUT_RDWR)
        except socket.error as e:
            # the peer may have closed the socket already
            logger.debug("error closing socket to %s: %s" % (str(self._remote_endpoint), e))
        finally:
            self.write = None
            self.sock.close()
