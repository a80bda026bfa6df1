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

import logging
import sys

import cpclient.args


def setup_logging(verbosity):
    """Configure the root logger from -v/-q counts"""
    logging.basicConfig(format='%(message)s')

    if verbosity == 0:
        logging.root.setLevel(logging.INFO)
    elif verbosity > 0:
        logging.root.setLevel(logging.DEBUG)
    elif verbosity == -1:
        logging.root.setLevel(logging.WARNING)
    else:
        logging.root.setLevel(logging.ERROR)


def main():
    args = cpclient.args.parse_cp_args(sys.argv[1:])

    setup_logging(args.verbosity)

    if not hasattr(args, 'cmd_func'):
        args.parser.error('No command specified')

    args.cmd_func(args)
