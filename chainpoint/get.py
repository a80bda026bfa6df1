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
import uuid

from chainpoint.config import Config
from chainpoint.errors import InvalidArgument, InvalidUri
from chainpoint.network import is_valid_node_uri, open_client, gather_bounded
from chainpoint.node import RemoteNode
from chainpoint.proofs import ProofHandle, check_list_arg, is_valid_proof_handle

MAX_PROOF_HANDLES = 250


def is_valid_uuid1(value):
    if not isinstance(value, str):
        return False
    try:
        return uuid.UUID(value).version == 1
    except ValueError:
        return False


def validate_proof_handles(proof_handles):
    """Check and convert a list of proof handles

    Handles may be ProofHandle's or their dict form. Returns a list of
    ProofHandle's.
    """
    check_list_arg(proof_handles, 'proof_handles')

    handles = [ProofHandle.from_dict(h) if isinstance(h, dict) else h for h in proof_handles]
    if not all(is_valid_proof_handle(h) for h in handles):
        raise InvalidArgument('proof_handles list contains invalid objects')
    elif len(handles) > MAX_PROOF_HANDLES:
        raise InvalidArgument('proof_handles arg must be a list with <= %d elements' % MAX_PROOF_HANDLES)

    bad_uris = [h.uri for h in handles if not is_valid_node_uri(h.uri)]
    if bad_uris:
        raise InvalidUri('some proof handles contain invalid URI values : %s' % ', '.join(bad_uris))

    bad_hash_ids = [h.hash_id_node for h in handles if not is_valid_uuid1(h.hash_id_node)]
    if bad_hash_ids:
        raise InvalidArgument('some proof handles contain invalid hash_id_node UUID values : %s' %
                              ', '.join(bad_hash_ids))

    return handles


async def get_proofs(proof_handles, config=None, client=None):
    """Retrieve the proofs for a list of proof handles

    The output of submit_hashes() can be passed in directly. Each Node is
    asked once, for all of its hash ids.

    Returns a list of proof response dicts, each with hash_id_node, proof
    (base64 binary, or None if not ready yet) and anchors_complete.
    """
    handles = validate_proof_handles(proof_handles)

    if config is None:
        config = Config()

    hash_ids_by_node = {}
    for handle in handles:
        hash_ids_by_node.setdefault(handle.uri, []).append(handle.hash_id_node)

    async with open_client(client) as client:
        nodes = [RemoteNode(uri, client, timeout=config.timeout) for uri in hash_ids_by_node]
        logging.debug("Getting %d proofs from %r" % (len(handles), nodes))

        resp_list = await gather_bounded([node.get_proofs(hash_ids_by_node[node_uri])
                                          for node, node_uri in zip(nodes, hash_ids_by_node)],
                                         config.concurrency)

    proof_resps = []
    for resp in resp_list:
        for proof_resp in resp:
            proof_resp['anchors_complete'] = proof_resp.get('anchors_complete') or []
            proof_resps.append(proof_resp)

    return proof_resps
