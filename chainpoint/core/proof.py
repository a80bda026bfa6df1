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

"""Chainpoint proofs and their binary and JSON-LD forms

A proof document is the JSON-LD object a Node hands out: the hash being
proven, some identity fields, and a tree of branches, each a list of
operations ending in one or more anchors. Parsing evaluates those operations
to produce a Proof, whose anchors carry the value each one commits to.
"""

import base64
import binascii
import json
import zlib

import msgpack

from chainpoint.core.op import Op, OpSHA256x2, MsgValueError, is_hex
from chainpoint.errors import MalformedProof, UnknownProofFormat

PROOF_TYPE = 'Chainpoint'

CAL_ANCHOR_BRANCH = 'cal_anchor_branch'
BTC_ANCHOR_BRANCH = 'btc_anchor_branch'

# Anchor types whose expected value is published little-endian
LITTLE_ENDIAN_ANCHOR_TYPES = ('btc', 'tbtc')

IDENTITY_FIELDS = ('hash_id_node', 'hash_submitted_node_at',
                   'hash_id_core', 'hash_submitted_core_at')


class Anchor:
    """A claim that expected_value is published in some external ledger"""
    __slots__ = ['type', 'anchor_id', 'uris', 'expected_value']

    def __init__(self, type, anchor_id, uris, expected_value):
        self.type = type
        self.anchor_id = anchor_id
        self.uris = list(uris)
        self.expected_value = expected_value

    def __eq__(self, other):
        if isinstance(other, Anchor):
            return (self.type == other.type and
                    self.anchor_id == other.anchor_id and
                    self.uris == other.uris and
                    self.expected_value == other.expected_value)
        else:
            return NotImplemented

    def __repr__(self):
        return 'Anchor(%r, %r, <%s>)' % (self.type, self.anchor_id, self.expected_value)


class Branch:
    """A node in a proof's tree of anchors

    raw_tx is only set on Bitcoin anchor branches: the hex of the transaction
    whose txid the branch goes on to hash into a block merkle root.
    """
    __slots__ = ['label', 'anchors', 'branches', 'raw_tx']

    def __init__(self, label=None, anchors=(), branches=(), raw_tx=None):
        self.label = label
        self.anchors = list(anchors)
        self.branches = list(branches)
        self.raw_tx = raw_tx

    def __eq__(self, other):
        if isinstance(other, Branch):
            return (self.label == other.label and
                    self.anchors == other.anchors and
                    self.branches == other.branches and
                    self.raw_tx == other.raw_tx)
        else:
            return NotImplemented

    def __repr__(self):
        return 'Branch(%r, %d anchor(s), %d branch(es))' % (self.label, len(self.anchors), len(self.branches))


class Proof:
    """A parsed Chainpoint proof"""
    __slots__ = ['hash', 'hash_id_node', 'hash_submitted_node_at',
                 'hash_id_core', 'hash_submitted_core_at', 'branches']

    def __init__(self, hash, hash_id_node=None, hash_submitted_node_at=None,
                 hash_id_core=None, hash_submitted_core_at=None, branches=()):
        self.hash = hash
        self.hash_id_node = hash_id_node
        self.hash_submitted_node_at = hash_submitted_node_at
        self.hash_id_core = hash_id_core
        self.hash_submitted_core_at = hash_submitted_core_at
        self.branches = list(branches)

    def __eq__(self, other):
        if isinstance(other, Proof):
            return all(getattr(self, name) == getattr(other, name) for name in self.__slots__)
        else:
            return NotImplemented

    def __repr__(self):
        return 'Proof(<%s>)' % self.hash

    def str_tree(self):
        """Convert to tree (for debugging)"""
        r = "hash %s\n" % self.hash
        stack = [(branch, 1) for branch in reversed(self.branches)]
        while stack:
            branch, depth = stack.pop()
            indent = "    " * depth
            r += indent + "branch %s\n" % (branch.label or '(unlabeled)')
            for anchor in branch.anchors:
                r += indent + "  anchor %s %s = %s\n" % (anchor.type, anchor.anchor_id, anchor.expected_value)
            stack.extend((sub, depth + 1) for sub in reversed(branch.branches))
        return r

    @classmethod
    def from_object(cls, doc):
        """Parse a proof document

        Raises MalformedProof if the document isn't a valid Chainpoint proof.
        """
        _check_document(doc)

        self = cls(doc['hash'], **{name: doc.get(name) for name in IDENTITY_FIELDS})

        # Explicit work list rather than recursion, so nesting depth is
        # limited only by memory.
        work = [(binascii.unhexlify(doc['hash']), doc['branches'], self.branches)]
        while work:
            msg, raw_branches, parsed_branches = work.pop()
            if not isinstance(raw_branches, list):
                raise MalformedProof("branches must be a list; got %r" % raw_branches.__class__)

            for raw_branch in raw_branches:
                branch, end_msg = _evaluate_branch(msg, raw_branch)
                parsed_branches.append(branch)

                sub_branches = raw_branch.get('branches')
                if sub_branches:
                    work.append((end_msg, sub_branches, branch.branches))

        return self


def _check_document(doc):
    if not isinstance(doc, dict):
        raise UnknownProofFormat("Expected a proof object; got %r" % doc.__class__)
    elif doc.get('type') != PROOF_TYPE:
        raise MalformedProof("Not a %s proof: type is %r" % (PROOF_TYPE, doc.get('type')))
    elif not is_hex(doc.get('hash')):
        raise MalformedProof("Proof hash must be hex; got %r" % doc.get('hash'))
    elif 'branches' not in doc:
        raise MalformedProof("Proof has no branches")

    for name in IDENTITY_FIELDS:
        if doc.get(name) is not None and not isinstance(doc[name], str):
            raise MalformedProof("%s must be a string; got %r" % (name, doc[name]))


def _evaluate_branch(msg, raw_branch):
    """Apply a branch's ops to msg

    Returns (branch, msg) with msg being the result of the last op.
    """
    if not isinstance(raw_branch, dict):
        raise MalformedProof("Expected a branch object; got %r" % raw_branch.__class__)
    elif not isinstance(raw_branch.get('ops'), list):
        raise MalformedProof("Branch %r has no ops" % raw_branch.get('label'))

    branch = Branch(raw_branch.get('label'))
    for raw_op in raw_branch['ops']:
        if isinstance(raw_op, dict) and 'anchors' in raw_op:
            branch.anchors.extend(_evaluate_anchors(msg, raw_op['anchors']))
            continue

        try:
            op = Op.from_json(raw_op)
        except ValueError as exp:
            raise MalformedProof("Invalid op in branch %r: %s" % (branch.label, exp))

        # The message going into the first double-SHA256 of a Bitcoin branch
        # is the transaction being hashed into a txid.
        if branch.label == BTC_ANCHOR_BRANCH and branch.raw_tx is None and isinstance(op, OpSHA256x2):
            branch.raw_tx = binascii.hexlify(msg).decode('utf8')

        try:
            msg = op(msg)
        except MsgValueError as exp:
            raise MalformedProof("Can't apply %s: %s" % (op, exp))

    return branch, msg


def _evaluate_anchors(msg, raw_anchors):
    if not isinstance(raw_anchors, list):
        raise MalformedProof("anchors must be a list; got %r" % raw_anchors.__class__)

    anchors = []
    for raw_anchor in raw_anchors:
        try:
            anchor_type = raw_anchor['type']
            anchor_id = raw_anchor['anchor_id']
            uris = raw_anchor.get('uris', [])
        except (KeyError, TypeError, AttributeError) as exp:
            raise MalformedProof("Invalid anchor %r: %r" % (raw_anchor, exp))

        if not isinstance(anchor_type, str) or not isinstance(anchor_id, str):
            raise MalformedProof("Anchor type and anchor_id must be strings; got %r" % (raw_anchor,))
        elif not isinstance(uris, list) or not all(isinstance(uri, str) for uri in uris):
            raise MalformedProof("Anchor uris must be a list of strings; got %r" % (uris,))

        value = msg[::-1] if anchor_type in LITTLE_ENDIAN_ANCHOR_TYPES else msg
        anchors.append(Anchor(anchor_type, anchor_id, uris, binascii.hexlify(value).decode('utf8')))

    return anchors


# ----- Binary form -----
#
# A binary proof is the proof document packed with msgpack, then deflated
# with zlib. This is the form Nodes hand out, base64 encoded, from /proofs.

MAX_PROOF_SIZE = 2**20
"""Largest inflated binary proof we're willing to unpack"""


def object_to_binary(doc):
    """Encode a proof document in binary form

    Raises MalformedProof if the document isn't a valid proof, or can't be
    packed.
    """
    Proof.from_object(doc)

    try:
        packed = msgpack.packb(doc, use_bin_type=True)
    except (TypeError, ValueError) as exp:
        raise MalformedProof("Can't encode proof: %s" % exp)

    return zlib.compress(packed)


def binary_to_object(data):
    """Decode a binary proof into a proof document

    Raises MalformedProof if the data isn't a valid binary proof.
    """
    inflater = zlib.decompressobj()
    try:
        packed = inflater.decompress(data, MAX_PROOF_SIZE)
    except zlib.error as exp:
        raise MalformedProof("Can't inflate binary proof: %s" % exp)

    if inflater.unconsumed_tail:
        raise MalformedProof("Binary proof inflates to more than %d bytes" % MAX_PROOF_SIZE)
    elif not inflater.eof:
        raise MalformedProof("Binary proof is truncated")

    try:
        doc = msgpack.unpackb(packed, raw=False)
    except (ValueError, TypeError, msgpack.UnpackException) as exp:
        raise MalformedProof("Invalid binary proof: %s" % exp)

    if not isinstance(doc, dict):
        raise MalformedProof("Binary proof holds %r, not a proof object" % doc.__class__)
    _check_document(doc)

    return doc


def binary_text_to_bytes(text):
    """Decode the hex or base64 text a binary proof travels as

    Raises UnknownProofFormat if it is neither.
    """
    if is_hex(text):
        return binascii.unhexlify(text)

    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        raise UnknownProofFormat("Proof text is neither hex nor base64")


def encode(doc, form='base64'):
    """Encode a proof document

    form is one of 'binary' (bytes), 'base64', 'hex' or 'json'.
    """
    if form == 'json':
        _check_document(doc)
        return json.dumps(doc)

    binary = object_to_binary(doc)
    if form == 'binary':
        return binary
    elif form == 'base64':
        return base64.b64encode(binary).decode('utf8')
    elif form == 'hex':
        return binascii.hexlify(binary).decode('utf8')
    else:
        raise ValueError("Unknown proof form %r" % form)


def decode(raw):
    """Decode a proof in any binary form into a proof document"""
    if isinstance(raw, (bytes, bytearray)):
        return binary_to_object(bytes(raw))
    elif isinstance(raw, str):
        return binary_to_object(binary_text_to_bytes(raw))
    else:
        raise UnknownProofFormat("Can't decode %r as a binary proof" % raw.__class__)
