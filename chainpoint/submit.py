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

import binascii
import logging
import os

from chainpoint.config import Config
from chainpoint.core.op import OpSHA256, is_hex
from chainpoint.errors import InvalidArgument, InvalidUri
from chainpoint.network import is_valid_node_uri, get_nodes, open_client, gather_bounded, uniq
from chainpoint.node import RemoteNode
from chainpoint.proofs import map_submit_hashes_resp_to_proof_handles

MAX_HASHES = 250
MAX_URIS = 5
DEFAULT_NUM_NODES = 3


def validate_hashes_arg(args, validator, name='hashes'):
    """Check args is a non-empty list of at most MAX_HASHES valid items

    Every item failing validator is named in the error.
    """
    if not isinstance(args, (list, tuple)):
        raise InvalidArgument('%s arg must be a list' % name)
    elif not args:
        raise InvalidArgument('%s arg must be a non-empty list' % name)
    elif len(args) > MAX_HASHES:
        raise InvalidArgument('%s arg must be a list with <= %d elements' % (name, MAX_HASHES))

    rejects = [arg for arg in args if not validator(arg)]
    if rejects:
        raise InvalidArgument('%s arg contains invalid items : %s' % (name, ', '.join(str(r) for r in rejects)))


def validate_uris_arg(uris):
    if not isinstance(uris, (list, tuple)):
        raise InvalidArgument('uris arg must be a list of URIs')
    elif len(uris) > MAX_URIS:
        raise InvalidArgument('uris arg must be a list with <= %d elements' % MAX_URIS)


async def submit_hashes(hashes, uris=None, config=None, client=None):
    """Submit hex hashes to one or more Nodes

    Each hash is submitted to every Node in uris; if no uris are given three
    Nodes are discovered. Any failed submission fails the whole call.

    Returns a list of ProofHandle's, one per hash and Node.
    """
    if uris is None:
        uris = []
    if config is None:
        config = Config()

    validate_hashes_arg(hashes, is_hex)
    validate_uris_arg(uris)

    uris = uniq(uris)
    bad_uris = [uri for uri in uris if not is_valid_node_uri(uri)]
    if bad_uris:
        raise InvalidUri('uris arg contains invalid URIs : %s' % ', '.join(str(uri) for uri in bad_uris))

    async with open_client(client) as client:
        if not uris:
            uris = await get_nodes(DEFAULT_NUM_NODES, config, client)

        nodes = [RemoteNode(uri, client, timeout=config.timeout) for uri in uris]
        logging.debug("Submitting %d hashes to %r" % (len(hashes), nodes))

        resp_list = await gather_bounded([node.submit_hashes(list(hashes)) for node in nodes],
                                         config.concurrency)

    # Handles carry the uri as given, not as normalized by RemoteNode
    for uri, resp in zip(uris, resp_list):
        resp['meta']['submitted_to'] = uri

    return map_submit_hashes_resp_to_proof_handles(resp_list)


def get_file_hashes(paths):
    """SHA-256 hash a list of files

    Returns a list of (path, hex hash) tuples. Files we don't have permission
    to read are skipped.
    """
    validate_hashes_arg(paths, lambda path: isinstance(path, str) and os.path.isfile(path), name='paths')

    file_hashes = []
    for path in paths:
        try:
            with open(path, 'rb') as fd:
                digest = OpSHA256().hash_fd(fd)
        except PermissionError:
            logging.error("Insufficient permission to read file '%s', skipping" % path)
            continue

        file_hashes.append((path, binascii.hexlify(digest).decode('utf8')))

    return file_hashes


async def submit_file_hashes(paths, uris=None, config=None, client=None):
    """Submit the SHA-256 hashes of files to one or more Nodes

    As submit_hashes(), with the path of the hashed file set on each handle.
    """
    if uris is None:
        uris = []
    validate_uris_arg(uris)

    file_hashes = get_file_hashes(paths)
    if not file_hashes:
        raise InvalidArgument('paths arg contains no readable files')

    proof_handles = await submit_hashes([h for path, h in file_hashes], uris, config, client)

    path_by_hash = {}
    for path, h in file_hashes:
        path_by_hash.setdefault(h, path)

    for proof_handle in proof_handles:
        proof_handle.path = path_by_hash.get(proof_handle.hash)

    return proof_handles
