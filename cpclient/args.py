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

import argparse
import logging
import sys

import chainpoint.config
from chainpoint.errors import InvalidArgument

import cpclient
import cpclient.cmds


def make_common_options_arg_parser():
    parser = argparse.ArgumentParser(description="Chainpoint client.")
    parser.add_argument('--version', action='version', version='v%s' % cpclient.__version__)

    parser.add_argument("-q", "--quiet", action="count", default=0,
                        help="Be more quiet.")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Be more verbose. Both -v and -q may be used multiple times.")

    parser.add_argument("--config", metavar='PATH', dest='config_path', type=str,
                        default=None,
                        help="Configuration file. Default: %s" % chainpoint.config.default_config_path())

    parser.add_argument('-c', '--core', metavar='URL', dest='core_urls', action='append', type=str,
                        default=[],
                        help='Discover Nodes through this Core. May be specified multiple times. '
                             'Overrides the configured Cores.')

    parser.add_argument("--timeout", type=float, default=None,
                        help="Timeout before giving up on a request, in seconds. "
                             "Default: %d" % chainpoint.config.DEFAULT_TIMEOUT)

    return parser

def handle_common_options(args, parser):
    args.parser = parser
    args.verbosity = args.verbose - args.quiet

    try:
        config = chainpoint.config.Config.load(args.config_path)
    except InvalidArgument as exp:
        logging.error("%s" % exp)
        sys.exit(1)

    if args.core_urls:
        config.cores = args.core_urls
    if args.timeout is not None:
        if not args.timeout > 0:
            parser.error("--timeout must be > 0")
        config.timeout = args.timeout

    args.config = config

    return args

def parse_cp_args(raw_args):
    parser = make_common_options_arg_parser()

    subparsers = parser.add_subparsers(title='Subcommands',
                                       description='All operations are done through subcommands:')

    # ----- submit -----
    parser_submit = subparsers.add_parser('submit', aliases=['s'],
                                          help='Submit hashes or files to Nodes')

    parser_submit.add_argument('-n', '--node', metavar='URL', dest='node_urls', action='append', type=str,
                               default=[],
                               help='Submit to this Node. May be specified multiple times. '
                                    'If not specified three Nodes are chosen at random.')

    submit_target_group = parser_submit.add_mutually_exclusive_group(required=True)
    submit_target_group.add_argument('-d', metavar='DIGEST', dest='hex_digests', action='append', type=str,
                                     help='Submit a (hex-encoded) digest. May be specified multiple times.')
    submit_target_group.add_argument('-f', metavar='FILE', dest='paths', action='append', type=str,
                                     help='Submit the SHA-256 hash of a file. May be specified multiple times.')

    # ----- get -----
    parser_get = subparsers.add_parser('get', aliases=['g'],
                                       help='Retrieve proofs for the handles output by submit')
    parser_get.add_argument('handles_fd', metavar='HANDLES', type=argparse.FileType('r'),
                            help='JSON file of proof handles; - for stdin')

    # ----- evaluate -----
    parser_evaluate = subparsers.add_parser('evaluate', aliases=['e'],
                                            help='Calculate the expected anchor values of proofs, offline')
    parser_evaluate.add_argument('files', metavar='PROOF', type=argparse.FileType('rb'),
                                 nargs='+',
                                 help='Proof filename')

    # ----- verify -----
    parser_verify = subparsers.add_parser('verify', aliases=['v'],
                                          help="Verify proofs against a Node")
    parser_verify.add_argument('-n', '--node', metavar='URL', dest='node_url', type=str,
                               default=None,
                               help='Node to verify against. If not specified one is chosen at random.')
    parser_verify.add_argument('files', metavar='PROOF', type=argparse.FileType('rb'),
                               nargs='+',
                               help='Proof filename')

    # ----- txs -----
    parser_txs = subparsers.add_parser('txs', aliases=['t'],
                                       help='Show the Bitcoin transactions anchoring proofs')
    parser_txs.add_argument('files', metavar='PROOF', type=argparse.FileType('rb'),
                            nargs='+',
                            help='Proof filename')

    # ----- info -----
    parser_info = subparsers.add_parser('info', aliases=['i'],
                                        help='Show information on a proof')
    parser_info.add_argument('file', metavar='PROOF', type=argparse.FileType('rb'),
                             help='Proof filename')

    parser_submit.set_defaults(cmd_func=cpclient.cmds.submit_command)
    parser_get.set_defaults(cmd_func=cpclient.cmds.get_command)
    parser_evaluate.set_defaults(cmd_func=cpclient.cmds.evaluate_command)
    parser_verify.set_defaults(cmd_func=cpclient.cmds.verify_command)
    parser_txs.set_defaults(cmd_func=cpclient.cmds.txs_command)
    parser_info.set_defaults(cmd_func=cpclient.cmds.info_command)

    args = parser.parse_args(raw_args)
    args = handle_common_options(args, parser)

    return args
