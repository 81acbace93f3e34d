import logging
import os
import socket

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from validate import Validator

from linecast.connector.socketconn import resolve_endpoint
from linecast.credentials import CredentialProvider
from linecast.lines import line_breaks

logger = logging.getLogger(__name__)

# The default extension for configuration files
config_extension = '.cfg'

# the configspec describing the configuration and its defaults
schema_file = os.path.join(os.path.dirname(__file__), 'linecast.schema' + config_extension)

# the user's configuration file, applied over the defaults
user_config_file = os.path.join('~', '.linecast' + config_extension)


class ConfigError(Exception):
    """ The configuration is not valid. The broadcast cannot start. """


class BroadcastConfig:
    """
    The settings for a broadcast. Values are applied from the configuration sections by attribute name.
    `endpoint` and `credential` are filled in by validate_config().
    """
    def __init__(self):
        # [broadcast]
        self.host = '127.0.0.1'
        self.port = 0
        self.file = ''
        self.encoding = 'utf-8-sig'
        self.delay = 2
        self.repeat = False
        self.include_terminator = False
        self.line_break = 'crlf'
        # [tls]
        self.credential = None
        self.credentials_dir = '.'
        self.role = 'client'
        self.verify = False
        self.ca_file = None
        # [connection]
        self.retry_period = 0.5
        self.connect_timeout = 5
        self.stop_timeout = 8

        self.endpoint = None
        self.credential_handle = None

    @property
    def terminator(self):
        return line_breaks[self.line_break]


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def load_config(file=None, overrides=None, user_file=user_config_file):
    """
        Loads the layered configuration.
        Configurations are merged in this order, later values replacing earlier ones:
        - the defaults from the schema
        - the user configuration
        - the given configuration file
        - the overrides
        The merged configuration is validated against the schema.
    :param file:        a configuration file that must exist, or None
    :param overrides:   a dict of sections, e.g. from the command line
    :return: the validated ConfigObj
    """
    try:
        config = ConfigObj(configspec=schema_file)
        config.merge(load_config_file_base(os.path.expanduser(user_file), must_exist=False))
        if file:
            config.merge(load_config_file_base(file))
    except (ConfigObjError, IOError) as e:
        raise ConfigError(str(e)) from e
    if overrides:
        config.merge(overrides)

    result = config.validate(Validator(), preserve_errors=True)
    if result is not True:
        problems = []
        for section_list, key, res in flatten_errors(config, result):
            location = '.'.join(section_list + ([key] if key is not None else []))
            problems.append("%s: %s" % (location, res or 'missing'))
        raise ConfigError("the configuration is not valid (%s)" % '; '.join(problems))
    return config


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the named configuration section
    :param conf:        The root configuration
    :param path:        An iterable that lists the names of the config to resolve
    :return: The configuration object identified by the path
    """
    for p in path:    # lookup specific section
        conf = conf.get(p, None)
        if conf is None:
            return
    return conf


def apply_conf(conf: Section, target):
    """
    Applies the attributes contained in a configuration object to a target object.
    It does this by iterating over the items in the configuration and setting any attributes with the same name.
    """
    for k, v in conf.items():
        if hasattr(target, k):
            setattr(target, k, v)


def broadcast_config(config: ConfigObj) -> BroadcastConfig:
    """ creates the BroadcastConfig from the validated configuration sections. """
    target = BroadcastConfig()
    for name in ('broadcast', 'tls', 'connection'):
        section = fetch_conf_path(config, [name])
        if section:
            apply_conf(section, target)
    return target


def validate_config(target: BroadcastConfig, credential_provider=None) -> BroadcastConfig:
    """
    Checks the settings that must hold before a broadcast can start, and resolves the
    endpoint and the credential.
    Raises ConfigError describing the first problem found.
    """
    if not 0 < target.port <= 65535:
        raise ConfigError("port %s is not valid (0 < port <= 65535)" % target.port)

    if not target.host:
        raise ConfigError("no host given")
    try:
        target.endpoint = resolve_endpoint(target.host, target.port)
    except (socket.gaierror, IndexError) as e:
        raise ConfigError("address '%s' cannot be resolved: %s" % (target.host, e)) from e

    if not target.file:
        raise ConfigError("no file given")
    if not os.path.isfile(target.file):
        raise ConfigError("file cannot be found: %s" % target.file)
    if os.path.getsize(target.file) == 0:
        raise ConfigError("file is empty: %s" % target.file)

    if target.credential:
        if credential_provider is None:
            credential_provider = CredentialProvider(target.credentials_dir, target.role, target.verify,
                                                     target.ca_file)
        # CredentialError propagates with its own description
        target.credential_handle = credential_provider.resolve(target.credential)
    logger.debug("broadcasting %s to %s" % (target.file, target.endpoint))
    return target


def configure(file=None, overrides=None, **kwargs) -> BroadcastConfig:
    """ loads, applies and validates the configuration in one step. """
    return validate_config(broadcast_config(load_config(file, overrides, **kwargs)))
