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

import asyncio
import unittest

import httpx

from chainpoint.config import Config
from chainpoint.errors import InvalidArgument, NoEndpointsAvailable
from chainpoint.network import *

CORE = 'https://a.chainpoint.org'

class Test_uris(unittest.TestCase):
    def test_is_valid_node_uri(self):
        for uri in ('http://35.231.1.2',
                    'https://35.231.1.2',
                    'http://35.231.1.2:9090',
                    'http://35.231.1.2/'):
            self.assertTrue(is_valid_node_uri(uri), uri)

        for uri in ('http://0.0.0.0',
                    'http://node.example.com',
                    'ftp://35.231.1.2',
                    'http://35.231.1',
                    'http://35.231.1.2?hashes=1',
                    'http://35.231.1.2:port',
                    '35.231.1.2',
                    '',
                    None,
                    42):
            self.assertFalse(is_valid_node_uri(uri), uri)

    def test_is_valid_core_uri(self):
        self.assertTrue(is_valid_core_uri('https://a.chainpoint.org'))
        self.assertTrue(is_valid_core_uri('https://c.chainpoint.org/'))

        for uri in ('http://a.chainpoint.org',
                    'https://ab.chainpoint.org',
                    'https://a.chainpoint.org.example.com',
                    'https://a.chainpoint.org/nodes',
                    'https://35.231.1.2',
                    None):
            self.assertFalse(is_valid_core_uri(uri), uri)

    def test_uri_path(self):
        self.assertEqual(uri_path('http://35.231.1.2/calendar/1/hash'), '/calendar/1/hash')
        self.assertEqual(uri_path('http://35.231.1.2/calendar/1/data?x=1'), '/calendar/1/data?x=1')
        self.assertEqual(uri_path('http://35.231.1.2'), '')

    def test_uniq(self):
        self.assertEqual(uniq(['b', 'a', 'b', 'c', 'a']), ['b', 'a', 'c'])


class Test_gather_bounded(unittest.IsolatedAsyncioTestCase):
    async def test_order_and_bound(self):
        """Results keep request order, with bounded concurrency"""
        running = 0
        max_running = 0

        async def work(i):
            nonlocal running, max_running
            running += 1
            max_running = max(max_running, running)
            await asyncio.sleep(0.01 * (10 - i))
            running -= 1
            return i

        results = await gather_bounded([work(i) for i in range(10)], 3)
        self.assertEqual(results, list(range(10)))
        self.assertEqual(max_running, 3)

    async def test_exception_propagates(self):
        async def fail():
            raise ValueError('nope')

        with self.assertRaises(ValueError):
            await gather_bounded([fail()], 2)

    async def test_failure_cancels_others(self):
        """Once one coroutine fails the others are stopped before returning"""
        finished = []
        cancelled = []

        async def fail():
            raise ValueError('nope')

        async def slow(i):
            try:
                await asyncio.sleep(0.1)
            except asyncio.CancelledError:
                cancelled.append(i)
                raise
            finished.append(i)

        with self.assertRaises(ValueError):
            await gather_bounded([fail()] + [slow(i) for i in range(3)], 25)
        self.assertEqual(sorted(cancelled), [0, 1, 2])

        await asyncio.sleep(0.2)
        self.assertEqual(finished, [])

    async def test_failure_with_queued_coroutines(self):
        """Coroutines still waiting for a slot never get to run"""
        started = []
        finished = []

        async def fail():
            await asyncio.sleep(0.05)
            raise ValueError('nope')

        async def work(i):
            started.append(i)
            await asyncio.sleep(0.1)
            finished.append(i)

        with self.assertRaises(ValueError):
            await gather_bounded([fail()] + [work(i) for i in range(5)], 2)
        await asyncio.sleep(0.3)
        self.assertLessEqual(len(started), 2)
        self.assertEqual(finished, [])


def make_client(node_list, dead=()):
    """Client answering for a Core listing node_list, with dead Nodes refusing connections"""
    def handler(request):
        if request.url.host == 'a.chainpoint.org':
            assert request.url.path == '/nodes/random'
            return httpx.Response(200, json=node_list)
        elif request.url.host in dead:
            raise httpx.ConnectError('Connection refused', request=request)
        else:
            return httpx.Response(200, json={'version': '1.5.0'})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class Test_discovery(unittest.IsolatedAsyncioTestCase):
    def test_get_cores(self):
        config = Config(cores=[CORE, 'https://b.chainpoint.org'])
        self.assertEqual(len(get_cores(1, config)), 1)
        self.assertEqual(sorted(get_cores(5, config)), [CORE, 'https://b.chainpoint.org'])
        self.assertIn(get_cores()[0], Config().core_uris())

        with self.assertRaises(InvalidArgument):
            get_cores(0)
        with self.assertRaises(InvalidArgument):
            get_cores('1')

    def test_get_cores_invalid_configured(self):
        """Configured addresses that aren't Core URIs are left out"""
        config = Config(cores=['http://evil.example.com:8080/x', CORE])
        with self.assertLogs(level='WARNING'):
            self.assertEqual(get_cores(5, config), [CORE])

        config = Config(cores=['http://evil.example.com:8080/x', 'https://35.231.1.2'])
        with self.assertLogs(level='WARNING'):
            with self.assertRaises(NoEndpointsAvailable):
                get_cores(1, config)

    async def test_get_nodes_invalid_core(self):
        """Node discovery never asks an invalid Core"""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=[{'public_uri': 'http://35.231.1.2'}])

        config = Config(cores=['http://evil.example.com:8080/x'])
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with self.assertLogs(level='WARNING'):
                with self.assertRaises(NoEndpointsAvailable):
                    await get_nodes(1, config, client)
        self.assertEqual(requests, [])

    async def test_get_nodes(self):
        """Only valid, responsive Nodes are returned"""
        node_list = [{'public_uri': 'http://35.231.1.2'},
                     {'public_uri': 'http://35.231.1.3'},
                     {'public_uri': 'http://node.example.com'},
                     {'public_uri': 'http://0.0.0.0'},
                     {'no_uri': True},
                     {'public_uri': 'http://35.231.1.4'}]

        async with make_client(node_list, dead=('35.231.1.3',)) as client:
            with self.assertLogs(level='WARNING'):
                nodes = await get_nodes(3, Config(cores=[CORE]), client)

        self.assertEqual(sorted(nodes), ['http://35.231.1.2', 'http://35.231.1.4'])

    async def test_get_nodes_num(self):
        node_list = [{'public_uri': 'http://35.231.1.%d' % i} for i in range(2, 10)]
        async with make_client(node_list) as client:
            nodes = await get_nodes(1, Config(cores=[CORE]), client)
        self.assertEqual(len(nodes), 1)

    async def test_get_nodes_none_responsive(self):
        node_list = [{'public_uri': 'http://35.231.1.2'}]
        async with make_client(node_list, dead=('35.231.1.2',)) as client:
            with self.assertRaises(NoEndpointsAvailable):
                await get_nodes(3, Config(cores=[CORE]), client)

        async with make_client([]) as client:
            with self.assertRaises(NoEndpointsAvailable):
                await get_nodes(3, Config(cores=[CORE]), client)

    async def test_get_nodes_invalid_num(self):
        with self.assertRaises(InvalidArgument):
            await get_nodes(0)
