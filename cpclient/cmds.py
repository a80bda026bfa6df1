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
import json
import logging
import sys

import httpx
from bitcoin.core.serialize import SerializationError

from chainpoint.errors import ChainpointError
from chainpoint.evaluate import evaluate_proofs, get_proof_txs
from chainpoint.get import get_proofs
from chainpoint.proofs import parse_proof
from chainpoint.submit import submit_hashes, submit_file_hashes
from chainpoint.verify import verify_proofs


def read_proofs(fd):
    """Read the proofs in a proof file

    The file may hold raw binary, base64 or hex text, a JSON-LD proof, or a
    JSON list of proofs such as the output of the get command.
    """
    raw = fd.read()
    try:
        text = raw.decode('utf8').strip()
    except UnicodeDecodeError:
        return [raw]

    try:
        doc = json.loads(text)
    except ValueError:
        return [text]

    return doc if isinstance(doc, list) else [doc]


def read_all_proofs(fds):
    proofs = []
    for fd in fds:
        logging.debug("Reading proofs from %s" % fd.name)
        proofs.extend(read_proofs(fd))
    return proofs


def print_json(obj):
    print(json.dumps(obj, indent=2))


def run_workflow(coro):
    """Run a workflow to completion, exiting on any error"""
    try:
        return asyncio.run(coro)
    except ChainpointError as exp:
        logging.error("%s" % exp)
        sys.exit(1)
    except httpx.HTTPError as exp:
        logging.error("Network error: %s" % exp)
        sys.exit(1)
    except ValueError as exp:
        logging.error("Invalid response: %s" % exp)
        sys.exit(1)


def submit_command(args):
    if args.paths:
        coro = submit_file_hashes(args.paths, args.node_urls, args.config)
    else:
        coro = submit_hashes(args.hex_digests, args.node_urls, args.config)

    proof_handles = run_workflow(coro)
    logging.info("Submitted to %d node(s)" % len(set(h.uri for h in proof_handles)))
    print_json([h.to_dict() for h in proof_handles])


def get_command(args):
    try:
        proof_handles = json.load(args.handles_fd)
    except ValueError as exp:
        logging.error("Invalid proof handles file %r: %s" % (args.handles_fd.name, exp))
        sys.exit(1)

    proof_resps = run_workflow(get_proofs(proof_handles, args.config))

    pending = [r['hash_id_node'] for r in proof_resps if r.get('proof') is None]
    if pending:
        logging.warning("Proofs not yet available for %s" % ', '.join(pending))

    print_json(proof_resps)


def evaluate_command(args):
    try:
        flat_anchors = evaluate_proofs(read_all_proofs(args.files))
    except ChainpointError as exp:
        logging.error("%s" % exp)
        sys.exit(1)

    print_json([a.to_dict() for a in flat_anchors])


def verify_command(args):
    proofs = read_all_proofs(args.files)
    flat_anchors = run_workflow(verify_proofs(proofs, args.node_url, args.config))

    print_json([a.to_dict() for a in flat_anchors])

    failed = [a for a in flat_anchors if not a.verified]
    if failed:
        for a in failed:
            logging.error("Failed! %s anchor %s of %s not verified" % (a.type, a.anchor_id, a.hash_id_node))
        sys.exit(1)
    else:
        logging.info("Success! All %d anchors verified" % len(flat_anchors))


def txs_command(args):
    try:
        btc_anchor_txs = get_proof_txs(read_all_proofs(args.files))
    except ChainpointError as exp:
        logging.error("%s" % exp)
        sys.exit(1)

    r = []
    for btc_anchor_tx in btc_anchor_txs:
        d = btc_anchor_tx.to_dict()
        if btc_anchor_tx.raw_btc_tx is not None:
            try:
                d['txid'] = btc_anchor_tx.txid
            except (ValueError, SerializationError) as exp:
                logging.warning("Could not decode Bitcoin transaction of %s: %s" % (btc_anchor_tx.hash_id_node, exp))
        else:
            logging.info("No Bitcoin anchor for %s" % btc_anchor_tx.hash_id_node)
        r.append(d)

    print_json(r)


def info_command(args):
    proofs = read_proofs(args.file)
    if len(proofs) != 1:
        logging.error("Error! %r holds %d proofs; expected one" % (args.file.name, len(proofs)))
        sys.exit(1)

    try:
        proof = parse_proof(proofs[0])
    except ChainpointError as exp:
        logging.error("Invalid proof file %r: %s" % (args.file.name, exp))
        sys.exit(1)

    print("Hash id node: %s, submitted %s" % (proof.hash_id_node, proof.hash_submitted_node_at))
    print("Hash id core: %s, submitted %s" % (proof.hash_id_core, proof.hash_submitted_core_at))
    print("Proof:")
    print(proof.str_tree())
