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

import contextlib
import io
import os
import tempfile
import unittest

import cpclient.cmds
from cpclient.args import parse_cp_args


class TestArgs(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.tmpdir.name, 'chainpoint.conf')
        with open(self.config_path, 'w') as fd:
            fd.write('cores: https://b.chainpoint.org\n')

        self.proof_path = os.path.join(self.tmpdir.name, 'proof.json')
        with open(self.proof_path, 'w') as fd:
            fd.write('{}')

    def tearDown(self):
        self.tmpdir.cleanup()

    def parse(self, *raw_args):
        args = parse_cp_args(['--config', self.config_path] + list(raw_args))
        self.addCleanup(lambda: [f.close() for f in getattr(args, 'files', [])])
        return args

    def test_verbosity(self):
        self.assertEqual(self.parse('-vv', '-q', 'evaluate', self.proof_path).verbosity, 1)
        self.assertEqual(self.parse('-qq', 'evaluate', self.proof_path).verbosity, -2)

    def test_config(self):
        """Configuration file, with command line overrides"""
        args = self.parse('evaluate', self.proof_path)
        self.assertEqual(args.config.cores, ['https://b.chainpoint.org'])

        args = self.parse('-c', 'https://c.chainpoint.org', '--timeout', '3', 'evaluate', self.proof_path)
        self.assertEqual(args.config.cores, ['https://c.chainpoint.org'])
        self.assertEqual(args.config.timeout, 3.0)

    def test_subcommands(self):
        self.assertIs(self.parse('evaluate', self.proof_path).cmd_func, cpclient.cmds.evaluate_command)
        self.assertIs(self.parse('txs', self.proof_path).cmd_func, cpclient.cmds.txs_command)

        args = self.parse('verify', '-n', 'http://35.231.1.2', self.proof_path)
        self.assertIs(args.cmd_func, cpclient.cmds.verify_command)
        self.assertEqual(args.node_url, 'http://35.231.1.2')

        args = self.parse('submit', '-n', 'http://35.231.1.2', '-d', 'aa', '-d', 'bb')
        self.assertIs(args.cmd_func, cpclient.cmds.submit_command)
        self.assertEqual(args.hex_digests, ['aa', 'bb'])
        self.assertEqual(args.node_urls, ['http://35.231.1.2'])
        self.assertIsNone(args.paths)

    def test_submit_needs_target(self):
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                self.parse('submit')
            with self.assertRaises(SystemExit):
                self.parse('submit', '-d', 'aa', '-f', self.proof_path)

    def test_invalid_timeout(self):
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit):
                self.parse('--timeout', '0', 'evaluate', self.proof_path)
