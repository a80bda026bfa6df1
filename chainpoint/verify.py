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

"""Verification of proofs against a single trusted Node

Whatever endpoints a proof names for its anchors, every anchor is checked
against the one Node chosen here: either the Node the caller trusts, or one
picked at random by discovery. A proof can't direct its own verification to a
server of its choosing.
"""

import logging
import time

from chainpoint.config import Config
from chainpoint.errors import InvalidArgument, InvalidUri, NoHashesFound
from chainpoint.evaluate import evaluate_proofs
from chainpoint.network import is_valid_node_uri, get_nodes, open_client, gather_bounded, uniq, uri_path
from chainpoint.node import RemoteNode


def rewrite_anchor_uris(flat_anchors, node_url):
    """Point every anchor's uri at node_url, keeping each uri's path"""
    node_url = node_url.rstrip('/')
    return [flat_anchor.replace(uri=node_url + uri_path(flat_anchor.uri))
            for flat_anchor in flat_anchors]


def now_timestamp():
    return time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime())


def compare_anchor_values(flat_anchors, values_by_uri):
    """Mark each anchor verified if the value found for its uri is the expected one"""
    verified_anchors = []
    for flat_anchor in flat_anchors:
        found = values_by_uri.get(flat_anchor.uri)
        if found is not None and found == flat_anchor.expected_value:
            verified_anchors.append(flat_anchor.replace(verified=True, verified_at=now_timestamp()))
        else:
            verified_anchors.append(flat_anchor.replace(verified=False, verified_at=None))
    return verified_anchors


async def verify_proofs(proofs, uri=None, config=None, client=None):
    """Verify a list of proofs

    proofs may be in any form evaluate_proofs() accepts. If uri is given,
    that Node is used for every anchor; otherwise one is discovered.

    Returns a list of FlatProofAnchor's with verified and verified_at set,
    duplicates removed. Raises NoHashesFound if the Node had no value for
    any of the anchors.
    """
    flat_anchors = evaluate_proofs(proofs)

    if config is None:
        config = Config()

    if uri is not None and not isinstance(uri, str):
        raise InvalidArgument('uri arg must be a String')

    async with open_client(client) as client:
        if uri:
            if not is_valid_node_uri(uri):
                raise InvalidUri('uri arg contains invalid Node URI : %s' % uri)
            node_url = uri
        else:
            node_url = (await get_nodes(1, config, client))[0]

        logging.debug("Verifying %d anchors against %s" % (len(flat_anchors), node_url))

        flat_anchors = uniq(rewrite_anchor_uris(flat_anchors, node_url))
        anchor_uris = uniq(flat_anchor.uri for flat_anchor in flat_anchors)

        node = RemoteNode(node_url, client, timeout=config.timeout)
        values = await gather_bounded([node.get_anchor_value(anchor_uri) for anchor_uri in anchor_uris],
                                      config.concurrency)

    values_by_uri = {anchor_uri: value for anchor_uri, value in zip(anchor_uris, values) if value is not None}
    if not values_by_uri:
        raise NoHashesFound('No hashes were found.')

    return compare_anchor_values(flat_anchors, values_by_uri)
