# Copyright (C) 2019 The Chainpoint Client developers
#
# This file is part of the Chainpoint Client.
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of the Chainpoint Client, including this file, may be copied,
# modified, propagated, or distributed except according to the terms contained
# in the LICENSE file.

"""Client configuration

A Config is an ordinary value handed to whatever needs it; nothing here is
global. Config.load() reads chainpoint.conf from the user's config directory
and then applies CHAINPOINT_* environment variables on top.
"""

import configparser
import logging
import os

import appdirs

from chainpoint.errors import InvalidArgument

CONFIG_FILENAME = 'chainpoint.conf'

DEFAULT_CORES = ['https://a.chainpoint.org',
                 'https://b.chainpoint.org',
                 'https://c.chainpoint.org']

DEFAULT_TIMEOUT = 10
DEFAULT_CONCURRENCY = 25
DEFAULT_NODE_PROBE_TIMEOUT = 1.0

ENV_PREFIX = 'CHAINPOINT_'


def default_config_path():
    return os.path.join(appdirs.user_config_dir('chainpoint'), CONFIG_FILENAME)


class Config:
    """Settings for talking to the Chainpoint network

    cores - Core URIs to use for Node discovery; None for the public Cores
    timeout - seconds before an individual request is given up on
    concurrency - maximum requests in flight at once
    node_probe_timeout - seconds a discovered Node gets to answer a probe
    """

    def __init__(self, cores=None, timeout=DEFAULT_TIMEOUT, concurrency=DEFAULT_CONCURRENCY,
                 node_probe_timeout=DEFAULT_NODE_PROBE_TIMEOUT):
        if cores is not None and not isinstance(cores, (list, tuple)):
            raise InvalidArgument('cores must be a list of URIs')
        if not timeout > 0:
            raise InvalidArgument('timeout must be > 0; got %r' % timeout)
        if not isinstance(concurrency, int) or concurrency < 1:
            raise InvalidArgument('concurrency must be an integer >= 1; got %r' % concurrency)

        self.cores = list(cores) if cores else None
        self.timeout = timeout
        self.concurrency = concurrency
        self.node_probe_timeout = node_probe_timeout

    def __repr__(self):
        return 'Config(cores=%r, timeout=%r, concurrency=%r)' % (self.cores, self.timeout, self.concurrency)

    @classmethod
    def from_mapping(cls, settings):
        """Create from a mapping of config-file style keys to strings"""
        kwargs = {}
        try:
            if settings.get('cores'):
                kwargs['cores'] = [uri.strip() for uri in settings['cores'].split(',') if uri.strip()]
            if settings.get('timeout'):
                kwargs['timeout'] = float(settings['timeout'])
            if settings.get('concurrency'):
                kwargs['concurrency'] = int(settings['concurrency'])
            if settings.get('node-probe-timeout'):
                kwargs['node_probe_timeout'] = float(settings['node-probe-timeout'])
        except ValueError as exp:
            raise InvalidArgument('Invalid configuration value: %s' % exp)

        return cls(**kwargs)

    @classmethod
    def load(cls, path=None, environ=None):
        """Load configuration from a config file and the environment

        The file holds 'key: value' lines. A missing file is not an error.
        Environment variables use the file's keys upper-cased, with dashes
        turned into underscores and prefixed by CHAINPOINT_.
        """
        if path is None:
            path = default_config_path()
        if environ is None:
            environ = os.environ

        settings = {}
        try:
            with open(path, 'r') as fd:
                parser = configparser.ConfigParser()
                parser.read_string('[chainpoint]\n' + fd.read(), source=path)
                settings.update(parser['chainpoint'])
            logging.debug("Loaded configuration from %s" % path)
        except FileNotFoundError:
            logging.debug("No configuration file at %s" % path)
        except configparser.Error as exp:
            raise InvalidArgument('Invalid configuration file %s: %s' % (path, exp))

        for key in ('cores', 'timeout', 'concurrency', 'node-probe-timeout'):
            env_key = ENV_PREFIX + key.upper().replace('-', '_')
            if environ.get(env_key):
                settings[key] = environ[env_key]

        return cls.from_mapping(settings)

    def core_uris(self):
        """Core URIs to try, in configured order"""
        return list(self.cores) if self.cores else list(DEFAULT_CORES)
