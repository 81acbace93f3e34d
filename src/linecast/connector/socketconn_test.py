import os
import socket
import ssl
import threading
import time
import unittest
from unittest.mock import Mock, patch

import timeout_decorator
from hamcrest import is_, assert_that, instance_of, raises, calling, contains_exactly, equal_to

from linecast.conduit.socket_conduit import SocketConduit
from linecast.conduit.socket_conduit_test import debug_timeout
from linecast.conduit.tls_conduit import TLSConduit
from linecast.connector.base import ConnectorError, ConnectionErrorEvent, ConnectorConnectedEvent, DataSentEvent
from linecast.connector.socketconn import SocketConnection, TCPEndpoint, resolve_endpoint
from linecast.credentials import CredentialProvider, SERVER


class TCPEndpointTest(unittest.TestCase):
    def test_key(self):
        assert_that(TCPEndpoint(None, 'ipaddr', 55).key(), is_('ipaddr:55'))
        assert_that(TCPEndpoint('name', 'ipaddr', 55).key(), is_('name:55'))

    def test_address_prefers_ip_address(self):
        assert_that(TCPEndpoint('name', '10.1.1.1', 55).address, is_(('10.1.1.1', 55)))
        assert_that(TCPEndpoint('name', None, 55).address, is_(('name', 55)))

    def test_equality(self):
        assert_that(TCPEndpoint('a', '1.2.3.4', 5), is_(equal_to(TCPEndpoint('a', '1.2.3.4', 5))))

    def test_resolve_numeric_address(self):
        endpoint = resolve_endpoint('127.0.0.1', 8000)
        assert_that(endpoint.ip_address, is_('127.0.0.1'))
        assert_that(endpoint.port, is_(8000))
        assert_that(endpoint.hostname, is_('127.0.0.1'))
        assert_that(endpoint.family, is_(socket.AF_INET))


class SocketConnectionTest(unittest.TestCase):
    def setUp(self):
        self.endpoint = TCPEndpoint('server', '10.0.0.5', 4000)

    def test_constructor(self):
        sut = SocketConnection(self.endpoint)
        assert_that(sut.endpoint, is_(self.endpoint))
        assert_that(sut.credential, is_(None))
        assert_that(sut.encrypted, is_(False))

    def test_successful_connect(self):
        sut = SocketConnection(self.endpoint, connect_timeout=3)
        # patch the socket module
        with patch('linecast.connector.socketconn.socket') as sock_module:
            sock_module.error = OSError
            sock_instance = Mock()
            sock_module.socket.return_value = sock_instance
            conduit = sut._connect()
            assert_that(conduit, is_(instance_of(SocketConduit)))
            assert_that(conduit.target, is_(sock_instance))
            sock_module.socket.assert_called_once_with(self.endpoint.family, sock_module.SOCK_STREAM)
            sock_instance.settimeout.assert_called_once_with(3)
            sock_instance.connect.assert_called_once_with(('10.0.0.5', 4000))

    def test_unsuccessful_connect(self):
        sut = SocketConnection(self.endpoint)
        with patch('linecast.connector.socketconn.socket') as sock_module:
            sock_module.error = OSError
            sock_instance = Mock()
            sock_module.socket.return_value = sock_instance
            sock_instance.connect.side_effect = ConnectionRefusedError("cannot connect to imagination land")

            assert_that(calling(sut._connect), raises(ConnectorError))
            sock_instance.connect.assert_called_once_with(('10.0.0.5', 4000))
            sock_instance.close.assert_called_once_with()

    def test_plain_connection_is_not_secured(self):
        sut = SocketConnection(self.endpoint)
        conduit = Mock()
        assert_that(sut._secure(conduit), is_(conduit))
        conduit.target.settimeout.assert_called_once_with(None)

    def test_secure_with_credential(self):
        credential = Mock()
        tls_sock = credential.wrap.return_value
        tls_sock.getpeername.return_value = ('10.0.0.5', 4000)
        tls_sock.cipher.return_value = ('TLS_AES_256_GCM_SHA384', 'TLSv1.3', 256)
        sut = SocketConnection(self.endpoint, credential)
        conduit = Mock()
        secured = sut._secure(conduit)
        assert_that(secured, is_(instance_of(TLSConduit)))
        assert_that(secured.target, is_(tls_sock))
        credential.wrap.assert_called_once_with(conduit.target, 'server')
        tls_sock.settimeout.assert_called_once_with(None)
        assert_that(sut.encrypted, is_(True))

    def test_handshake_failure(self):
        credential = Mock()
        credential.wrap.side_effect = ssl.SSLError("handshake failure")
        sut = SocketConnection(self.endpoint, credential)
        assert_that(calling(sut._secure).with_args(Mock()), raises(ConnectorError, "TLS handshake"))


class SocketConnectionLoopbackTest(unittest.TestCase):
    """ connects to a listening socket on the loopback interface """

    def setUp(self):
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.bind(('127.0.0.1', 0))
        self.server.listen(5)
        self.server.settimeout(5)
        port = self.server.getsockname()[1]
        self.sut = SocketConnection(TCPEndpoint('localhost', '127.0.0.1', port), log=Mock())
        self.listener = Mock()
        self.sut.events += self.listener
        self.peers = []

    def tearDown(self):
        self.sut.close()
        for peer in self.peers:
            peer.close()
        self.server.close()

    def accept(self):
        peer, _ = self.server.accept()
        peer.settimeout(5)
        self.peers.append(peer)
        return peer

    def fired(self):
        return [c.args[0] for c in self.listener.call_args_list]

    def wait_until_disconnected(self, timeout=2):
        deadline = time.time() + timeout
        while self.sut.connected and time.time() < deadline:
            time.sleep(0.01)

    @timeout_decorator.timeout(debug_timeout(5))
    def test_connect_and_send(self):
        assert_that(self.sut.connect(), is_(True))
        peer = self.accept()
        self.sut.send(b'alpha')
        assert_that(peer.recv(16), is_(b'alpha'))
        assert_that(self.fired(), contains_exactly(instance_of(ConnectorConnectedEvent), instance_of(DataSentEvent)))
        assert_that(self.fired()[0].remote_endpoint[1], is_(self.server.getsockname()[1]))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_not_connected_after_peer_closes(self):
        self.sut.connect()
        peer = self.accept()
        assert_that(self.sut.connected, is_(True))
        peer.close()
        self.wait_until_disconnected()
        assert_that(self.sut.is_connected(), is_(False))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_reconnects_after_peer_closes(self):
        self.sut.connect()
        self.accept().close()
        self.wait_until_disconnected()
        assert_that(self.sut.connect(), is_(True))
        peer = self.accept()
        self.sut.send(b'beta')
        assert_that(peer.recv(16), is_(b'beta'))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_disconnect_shuts_down(self):
        self.sut.connect()
        peer = self.accept()
        self.sut.send(b'last')
        self.sut.disconnect()
        assert_that(peer.recv(16), is_(b'last'))
        assert_that(peer.recv(16), is_(b''))
        assert_that(self.sut.connected, is_(False))

    @timeout_decorator.timeout(debug_timeout(5))
    def test_refused(self):
        self.server.close()
        assert_that(self.sut.connect(), is_(False))
        events = self.fired()
        assert_that(events, contains_exactly(instance_of(ConnectionErrorEvent)))
        assert_that(events[0].error, is_(instance_of(ConnectorError)))


loopback_credential = os.path.join(os.path.dirname(__file__), 'testdata', 'loopback.pem')


class TLSLoopbackTest(unittest.TestCase):
    """ secures a connection to a TLS listener on the loopback interface, using a self-signed certificate """

    def setUp(self):
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.bind(('127.0.0.1', 0))
        self.server.listen(5)
        self.server.settimeout(5)
        port = self.server.getsockname()[1]
        self.server_credential = CredentialProvider(role=SERVER).resolve(loopback_credential)
        credential = CredentialProvider().resolve(loopback_credential)
        self.sut = SocketConnection(TCPEndpoint('localhost', '127.0.0.1', port), credential, log=Mock())
        self.peer = None
        self.accepted = threading.Thread(target=self.accept, daemon=True)
        self.accepted.start()

    def tearDown(self):
        self.sut.close()
        if self.peer:
            self.peer.close()
        self.server.close()

    def accept(self):
        peer, _ = self.server.accept()
        peer.settimeout(5)
        # a truncated stream raises instead of reading as end of stream
        self.peer = self.server_credential.context.wrap_socket(peer, server_side=True, suppress_ragged_eofs=False)

    @timeout_decorator.timeout(debug_timeout(10))
    def test_send_encrypted(self):
        assert_that(self.sut.connect(), is_(True))
        self.accepted.join(5)
        assert_that(self.sut._conduit, is_(instance_of(TLSConduit)))
        assert_that(self.sut.connected, is_(True))
        self.sut.send(b'alpha\r\n')
        assert_that(self.peer.recv(16), is_(b'alpha\r\n'))

    @timeout_decorator.timeout(debug_timeout(10))
    def test_not_connected_after_peer_closes(self):
        self.sut.connect()
        self.accepted.join(5)
        self.peer.close()
        deadline = time.time() + 2
        while self.sut.connected and time.time() < deadline:
            time.sleep(0.01)
        assert_that(self.sut.is_connected(), is_(False))

    @timeout_decorator.timeout(debug_timeout(10))
    def test_disconnect_ends_the_tls_session(self):
        self.sut.connect()
        self.accepted.join(5)
        self.sut.send(b'last')
        self.sut.disconnect()
        assert_that(self.peer.recv(16), is_(b'last'))
        assert_that(self.peer.recv(16), is_(b''))
