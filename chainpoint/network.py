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

"""Node and Core URIs, discovery, and concurrent requests"""

import asyncio
import contextlib
import ipaddress
import logging
import random
import re
import urllib.parse

import httpx

import chainpoint
from chainpoint.config import Config
from chainpoint.errors import InvalidArgument, NoEndpointsAvailable

CORE_HOST_RE = re.compile(r'[a-z]\.chainpoint\.org')


def is_valid_core_uri(uri):
    """Check if uri is a valid Core URI

    Cores are only ever reached over https, at a single letter subdomain of
    chainpoint.org.
    """
    if not isinstance(uri, str) or not uri:
        return False

    try:
        parsed_uri = urllib.parse.urlsplit(uri)
        parsed_uri.port
    except ValueError:
        return False

    return (parsed_uri.scheme == 'https' and
            parsed_uri.hostname is not None and
            bool(CORE_HOST_RE.fullmatch(parsed_uri.hostname)) and
            parsed_uri.path in ('', '/') and
            not parsed_uri.query and not parsed_uri.fragment)


def is_valid_node_uri(uri):
    """Check if uri is a valid Node URI

    Nodes are addressed by IPv4 address over http or https.
    """
    if not isinstance(uri, str) or not uri:
        return False

    try:
        parsed_uri = urllib.parse.urlsplit(uri)
        parsed_uri.port
        address = ipaddress.IPv4Address(parsed_uri.hostname or '')
    except ValueError:
        return False

    return (parsed_uri.scheme in ('http', 'https') and
            address != ipaddress.IPv4Address('0.0.0.0') and
            parsed_uri.username is None and
            not parsed_uri.query and not parsed_uri.fragment)


def uri_path(uri):
    """Path of uri, including any query string"""
    parsed_uri = urllib.parse.urlsplit(uri)
    if parsed_uri.query:
        return parsed_uri.path + '?' + parsed_uri.query
    return parsed_uri.path


def uniq(items):
    """Items with duplicates removed, first occurrence kept"""
    return list(dict.fromkeys(items))


@contextlib.asynccontextmanager
async def open_client(client=None):
    """Use client if given, otherwise a new AsyncClient closed on exit"""
    if client is not None:
        yield client
    else:
        async with httpx.AsyncClient(headers={'User-Agent': chainpoint.USER_AGENT}) as new_client:
            yield new_client


async def gather_bounded(coros, concurrency):
    """Await coroutines concurrently, at most concurrency at a time

    Results are returned in the same order as coros. The first exception
    raised propagates, after the remaining coroutines have been cancelled and
    waited for.
    """
    semaphore = asyncio.Semaphore(concurrency)

    async def run(coro):
        async with semaphore:
            return await coro

    coros = list(coros)
    tasks = [asyncio.ensure_future(run(coro)) for coro in coros]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        # coroutines whose task was cancelled before it started
        for coro in coros:
            coro.close()
        raise


def get_cores(num=1, config=None):
    """Return up to num Core URIs, in random order

    Configured Cores, or the public ones if none are configured, that aren't
    valid Core URIs are left out with a warning.
    """
    if not isinstance(num, int) or num < 1:
        raise InvalidArgument('num arg must be an integer >= 1')

    if config is None:
        config = Config()

    cores = []
    for core in config.core_uris():
        if is_valid_core_uri(core):
            cores.append(core)
        else:
            logging.warning("Ignoring invalid core address %r" % core)

    if not cores:
        raise NoEndpointsAvailable('no valid core addresses available')

    random.shuffle(cores)
    return cores[0:num]


async def probe_node_endpoints(nodes, client, timeout, concurrency, failures=None):
    """Probe Nodes to see if they are answering requests

    Returns a list the same length as nodes, holding the URI of each
    responsive Node and None for the others. Unresponsive Nodes are also
    appended to failures if given.
    """
    if failures is None:
        failures = []

    async def probe(node):
        try:
            await client.get(node, timeout=timeout)
            return node
        except httpx.HTTPError as exp:
            logging.debug("Node %s failed probe: %r" % (node, exp))
            failures.append(node)
            return None

    return await gather_bounded([probe(node) for node in nodes], concurrency)


async def get_nodes(num=3, config=None, client=None):
    """Return up to num responsive Node URIs, in random order

    Nodes are listed by a Core, then each one is probed; only those that
    answer are returned. Raises NoEndpointsAvailable if none do.
    """
    if not isinstance(num, int) or num < 1:
        raise InvalidArgument('num arg must be an integer >= 1')

    if config is None:
        config = Config()

    core = get_cores(1, config)[0]

    async with open_client(client) as client:
        logging.debug("Listing nodes from core %s" % core)
        resp = await client.get(core.rstrip('/') + '/nodes/random', timeout=config.timeout)
        resp.raise_for_status()

        node_list = resp.json()
        if not isinstance(node_list, list):
            raise NoEndpointsAvailable('Unexpected node list from core %s' % core)

        nodes = [node.get('public_uri') for node in node_list if isinstance(node, dict)]
        nodes = [node for node in nodes if is_valid_node_uri(node)]
        random.shuffle(nodes)

        failures = []
        tested_nodes = await probe_node_endpoints(nodes, client, config.node_probe_timeout,
                                                 config.concurrency, failures)

    responsive_nodes = [node for node in tested_nodes if node]

    if not responsive_nodes:
        raise NoEndpointsAvailable('Could not connect to any nodes provided by core %s' % core)
    elif failures:
        logging.warning("Could not connect to (%d) of (%d) nodes provided by core %s" %
                        (len(failures), len(tested_nodes), core))

    return responsive_nodes[0:num]
