"""
Resolves credential identifiers to TLS credentials.

A credential identifier is either the path of a PEM file holding a certificate and its private key,
or a name that is looked up in the credentials directory, as `<name>.pem`, or as `<name>.crt` with
the key in `<name>.key`.
"""
import logging
import os
import ssl

logger = logging.getLogger(__name__)

CLIENT = 'client'
SERVER = 'server'


class CredentialError(Exception):
    """ The credential could not be found or loaded. """


class Credential:
    """
    An opaque handle to a certificate and key, ready to secure a connected socket.
    :param name the identifier the credential was resolved from
    :param context the ssl.SSLContext holding the certificate chain
    :param role which side of the TLS handshake to play, CLIENT or SERVER.
    """
    def __init__(self, name, context: ssl.SSLContext, role=CLIENT):
        if role not in (CLIENT, SERVER):
            raise ValueError("unknown TLS role %s" % role)
        self.name = name
        self.context = context
        self.role = role

    @property
    def server_side(self):
        return self.role == SERVER

    def wrap(self, sock, hostname=None):
        """
        Performs the TLS handshake over the connected socket.
        :return: the ssl.SSLSocket, which takes over the socket's file descriptor.
        """
        server_hostname = None if self.server_side else hostname
        return self.context.wrap_socket(sock, server_side=self.server_side, server_hostname=server_hostname)

    def __str__(self):
        return "%s (%s)" % (self.name, self.role)


class CredentialProvider:
    """
    Finds certificates by name and builds the TLS context for them.

    :param directory    where named credentials are looked up
    :param role         the handshake role credentials are created for
    :param verify       when True, the peer's certificate is verified
    :param ca_file      certificates used to verify the peer. The system defaults are used when not given.
    """
    def __init__(self, directory='.', role=CLIENT, verify=False, ca_file=None, log=logger):
        self.directory = directory
        self.role = role
        self.verify = verify
        self.ca_file = ca_file
        self.logger = log

    def resolve(self, identifier) -> Credential:
        """
        Resolves the identifier to a credential.
        Raises CredentialError if no certificate matches or it cannot be loaded.
        """
        if not identifier:
            raise CredentialError("no credential given")
        certfile, keyfile = self.locate(identifier)
        context = self._create_context()
        try:
            context.load_cert_chain(certfile, keyfile)
        except (OSError, ssl.SSLError) as e:
            raise CredentialError("unable to load certificate '%s' from %s: %s" % (identifier, certfile, e)) from e
        self.logger.debug("loaded certificate '%s' from %s" % (identifier, certfile))
        return Credential(identifier, context, self.role)

    def locate(self, identifier):
        """
        Finds the certificate and key files for the identifier.
        :return: a tuple (certfile, keyfile). keyfile is None when the key is in the certificate file.
        """
        if os.path.isfile(identifier):
            return identifier, None
        base = os.path.join(self.directory, identifier)
        pem = base + '.pem'
        if os.path.isfile(pem):
            return pem, None
        crt, key = base + '.crt', base + '.key'
        if os.path.isfile(crt):
            return crt, key if os.path.isfile(key) else None
        raise CredentialError("certificate '%s' not found (looked for %s, %s and %s)" %
                              (identifier, identifier, pem, crt))

    def _create_context(self) -> ssl.SSLContext:
        purpose = ssl.Purpose.CLIENT_AUTH if self.role == SERVER else ssl.Purpose.SERVER_AUTH
        try:
            context = ssl.create_default_context(purpose, cafile=self.ca_file)
        except (OSError, ssl.SSLError) as e:
            raise CredentialError("unable to load CA certificates from %s: %s" % (self.ca_file, e)) from e
        if self.role == SERVER:
            context.verify_mode = ssl.CERT_REQUIRED if self.verify else ssl.CERT_NONE
        else:
            context.check_hostname = self.verify
            context.verify_mode = ssl.CERT_REQUIRED if self.verify else ssl.CERT_NONE
        return context
