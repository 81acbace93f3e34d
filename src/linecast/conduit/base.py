from abc import abstractmethod
from io import IOBase


class Conduit:
    """
    A conduit is a transport stream to a remote endpoint. It provides a file-like output endpoint.
    Callers depend only on this interface, never on whether the stream is encrypted.
    """

    @property
    @abstractmethod
    def target(self):
        """ the underlying transport handle """
        raise NotImplementedError

    @property
    @abstractmethod
    def remote_endpoint(self):
        """ the address of the peer this conduit is connected to """
        raise NotImplementedError

    @property
    @abstractmethod
    def output(self) -> IOBase:
        """ fetches the I/O stream that provides output.
            Callers can use the usual writeXXX() methods. """
        raise NotImplementedError

    @property
    @abstractmethod
    def open(self) -> bool:
        """ determines if this conduit is open. When open, the output stream can be written to."""
        raise NotImplementedError

    @abstractmethod
    def close(self):
        """
        Closes the output stream and releases the transport handle.
        """
        raise NotImplementedError
