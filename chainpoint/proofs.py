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

"""Normalizing, parsing and flattening proofs"""

import json
import logging
import re
import uuid

from bitcoin.core import CTransaction, b2lx, x

from chainpoint.core.op import is_hex
from chainpoint.core.proof import Proof, PROOF_TYPE, BTC_ANCHOR_BRANCH, decode
from chainpoint.errors import InvalidArgument, InvalidFormat, MalformedProof, UnknownProofFormat

BASE64_RE = re.compile(r'(?:[A-Za-z0-9+/]{4})*(?:[A-Za-z0-9+/]{2}==|[A-Za-z0-9+/]{3}=)?')

def is_base64(value):
    return isinstance(value, str) and len(value) > 0 and bool(BASE64_RE.fullmatch(value))

def is_json(value):
    """True if value is JSON text for an object or array"""
    if not isinstance(value, str):
        return False
    try:
        return isinstance(json.loads(value), (dict, list))
    except ValueError:
        return False

def check_list_arg(value, name):
    if not isinstance(value, (list, tuple)):
        raise InvalidArgument('%s arg must be a list' % name)
    elif not value:
        raise InvalidArgument('%s arg must be a non-empty list' % name)


class NormalizedProof:
    """A proof whose form has been identified, ready to be parsed"""
    __slots__ = ['value']

    def __init__(self, value):
        self.value = value

    def __eq__(self, other):
        return self.__class__ is other.__class__ and self.value == other.value

    def __repr__(self):
        return '%s(%r)' % (self.__class__.__name__, self.value)

    def to_object(self):
        """Return the proof document"""
        raise NotImplementedError

    def parse(self):
        return Proof.from_object(self.to_object())

class DecodedProof(NormalizedProof):
    """Already decoded proof document"""
    __slots__ = []

    def to_object(self):
        return self.value

class JsonProof(NormalizedProof):
    """JSON-LD text"""
    __slots__ = []

    def to_object(self):
        return json.loads(self.value)

class BinaryProof(NormalizedProof):
    """Binary proof, as raw bytes or base64 or hex text"""
    __slots__ = []

    def to_object(self):
        return decode(self.value)


def classify_proof(proof, index=0):
    """Identify the form a single proof is in

    Accepts the objects returned by get_proofs(), which carry the proof as a
    string in their 'proof' field, decoded proof documents, JSON-LD text, and
    binary proofs as bytes, base64 or hex.

    Raises InvalidFormat if the proof is in none of those forms.
    """
    if isinstance(proof, dict) and isinstance(proof.get('proof'), str):
        proof = proof['proof']

    if isinstance(proof, dict) and proof.get('type') == PROOF_TYPE:
        return DecodedProof(proof)
    elif isinstance(proof, (bytes, bytearray)) and proof:
        return BinaryProof(bytes(proof))
    elif is_json(proof):
        return JsonProof(proof)
    elif is_base64(proof) or is_hex(proof):
        return BinaryProof(proof)
    else:
        raise InvalidFormat('proofs arg has an element at index %d that is not a proof: %.64r' % (index, proof),
                            index=index)


def normalize_proofs(proofs):
    """Validate and normalize proofs ahead of parsing

    All-or-nothing: a single unrecognizable element fails the whole call with
    InvalidFormat.
    """
    check_list_arg(proofs, 'proofs')
    return [classify_proof(proof, i) for i, proof in enumerate(proofs)]


def parse_proof(proof):
    if not isinstance(proof, NormalizedProof):
        try:
            proof = classify_proof(proof)
        except InvalidFormat:
            raise UnknownProofFormat('unknown proof format: %.64r' % (proof,))

    try:
        return proof.parse()
    except ValueError as exp:
        raise MalformedProof('Invalid proof: %s' % exp)

def parse_proofs(proofs):
    """Parse a list of proofs, each of which can be in any supported form"""
    check_list_arg(proofs, 'proofs')
    return [parse_proof(proof) for proof in proofs]


class FlatProofAnchor:
    """Everything needed to verify a single anchor of a proof

    verified and verified_at stay None until the anchor has been checked
    against a trusted Node.
    """
    FIELDS = ('hash', 'hash_id_node', 'hash_id_core', 'hash_submitted_node_at', 'hash_submitted_core_at',
              'branch', 'uri', 'type', 'anchor_id', 'expected_value')
    __slots__ = FIELDS + ('verified', 'verified_at')

    def __init__(self, **kwargs):
        for name in self.FIELDS:
            setattr(self, name, kwargs.pop(name, None))
        self.verified = kwargs.pop('verified', None)
        self.verified_at = kwargs.pop('verified_at', None)
        if kwargs:
            raise TypeError('Unexpected fields %s' % ', '.join(sorted(kwargs)))

    def _key(self):
        return tuple(getattr(self, name) for name in self.__slots__)

    def __eq__(self, other):
        if isinstance(other, FlatProofAnchor):
            return self._key() == other._key()
        else:
            return NotImplemented

    def __hash__(self):
        return hash(self._key())

    def __repr__(self):
        return 'FlatProofAnchor(%r, %r, %r, <%s>)' % (self.hash_id_node, self.branch, self.type, self.expected_value)

    def replace(self, **changes):
        """Return a copy with some fields changed"""
        fields = {name: getattr(self, name) for name in self.__slots__}
        fields.update(changes)
        return FlatProofAnchor(**fields)

    def to_dict(self):
        d = {name: getattr(self, name) for name in self.FIELDS}
        if self.verified is not None:
            d['verified'] = self.verified
            d['verified_at'] = self.verified_at
        return d


def flatten_proof_branches(branches, proof=None):
    """Flatten a list of branches into one FlatProofAnchor per anchor

    Branches are walked depth-first, pre-order: a branch's own anchors come
    before those of its sub-branches, and siblings stay in order. If proof is
    given its identity fields are copied into every record.
    """
    identity = {}
    if proof is not None:
        identity = {name: getattr(proof, name) for name in FlatProofAnchor.FIELDS[0:5]}

    flat_anchors = []
    try:
        stack = list(reversed(branches))
        while stack:
            branch = stack.pop()
            for anchor in branch.anchors:
                if not anchor.uris:
                    raise MalformedProof('%s anchor %r has no uris' % (anchor.type, anchor.anchor_id))

                flat_anchors.append(FlatProofAnchor(branch=branch.label or None,
                                                    uri=anchor.uris[0],
                                                    type=anchor.type,
                                                    anchor_id=anchor.anchor_id,
                                                    expected_value=anchor.expected_value,
                                                    **identity))
            stack.extend(reversed(branch.branches))

    except (AttributeError, TypeError) as exp:
        raise MalformedProof('Malformed proof branch: %s' % exp)

    return flat_anchors


def flatten_proofs(parsed_proofs):
    """Flatten parsed proofs into a list of FlatProofAnchor's

    Order follows the input proofs, then each proof's pre-order walk.
    """
    check_list_arg(parsed_proofs, 'parsed_proofs')

    flat_anchors = []
    for parsed_proof in parsed_proofs:
        try:
            branches = parsed_proof.branches
        except AttributeError:
            raise MalformedProof('Expected a parsed proof; got %r' % parsed_proof.__class__)
        flat_anchors.extend(flatten_proof_branches(branches, parsed_proof))

    return flat_anchors


class BtcAnchorTx:
    """The Bitcoin transaction anchoring a proof

    Every field but hash_id_node is None when the proof has no Bitcoin
    anchor branch.
    """
    __slots__ = ['hash_id_node', 'raw_btc_tx', 'expected_value', 'anchor_id']

    def __init__(self, hash_id_node, raw_btc_tx=None, expected_value=None, anchor_id=None):
        self.hash_id_node = hash_id_node
        self.raw_btc_tx = raw_btc_tx
        self.expected_value = expected_value
        self.anchor_id = anchor_id

    def __eq__(self, other):
        if isinstance(other, BtcAnchorTx):
            return all(getattr(self, name) == getattr(other, name) for name in self.__slots__)
        else:
            return NotImplemented

    def __repr__(self):
        return 'BtcAnchorTx(%r, %r)' % (self.hash_id_node, self.anchor_id)

    @property
    def tx(self):
        """The transaction deserialized, or None"""
        if self.raw_btc_tx is None:
            return None
        return CTransaction.deserialize(x(self.raw_btc_tx))

    @property
    def txid(self):
        """Txid of the transaction in the usual byte-reversed hex, or None"""
        tx = self.tx
        return None if tx is None else b2lx(tx.GetTxid())

    def to_dict(self):
        return {name: getattr(self, name) for name in self.__slots__ if getattr(self, name) is not None}


def flatten_btc_branches(parsed_proofs):
    """Extract the Bitcoin transaction of each parsed proof

    Unlike flatten_proofs() this never fails: a proof with no Bitcoin anchor
    branch, or a malformed one, still gets a BtcAnchorTx with only
    hash_id_node set. Bitcoin anchoring is best-effort per proof, so callers
    must check which fields are present.
    """
    btc_anchor_txs = []
    for proof in parsed_proofs:
        btc_anchor_tx = BtcAnchorTx(getattr(proof, 'hash_id_node', None))

        try:
            btc_branch = _find_btc_branch(proof)
        except (AttributeError, TypeError) as exp:
            logging.warning("Skipping Bitcoin branch of malformed proof %s: %s" % (btc_anchor_tx.hash_id_node, exp))
            btc_branch = None

        if btc_branch is not None:
            btc_anchor_tx.raw_btc_tx = btc_branch.raw_tx
            for anchor in btc_branch.anchors:
                if anchor.type == 'btc':
                    btc_anchor_tx.expected_value = anchor.expected_value
                    btc_anchor_tx.anchor_id = anchor.anchor_id
                    break

        btc_anchor_txs.append(btc_anchor_tx)

    return btc_anchor_txs


def _find_btc_branch(proof):
    # Bitcoin anchors hang off the calendar branch, one level down
    for branch in proof.branches:
        for sub_branch in branch.branches:
            if sub_branch.label == BTC_ANCHOR_BRANCH:
                return sub_branch
    return None


class ProofHandle:
    """Everything needed to retrieve a proof from the Node a hash went to"""
    __slots__ = ['uri', 'hash', 'hash_id_node', 'group_id', 'path']

    def __init__(self, uri, hash_id_node, hash=None, group_id=None, path=None):
        self.uri = uri
        self.hash_id_node = hash_id_node
        self.hash = hash
        self.group_id = group_id
        self.path = path

    def __eq__(self, other):
        if isinstance(other, ProofHandle):
            return all(getattr(self, name) == getattr(other, name) for name in self.__slots__)
        else:
            return NotImplemented

    def __repr__(self):
        return 'ProofHandle(%r, %r)' % (self.uri, self.hash_id_node)

    @classmethod
    def from_dict(cls, d):
        return cls(d.get('uri'), d.get('hash_id_node'),
                   hash=d.get('hash'), group_id=d.get('group_id'), path=d.get('path'))

    def to_dict(self):
        return {name: getattr(self, name) for name in self.__slots__ if getattr(self, name) is not None}


def is_valid_proof_handle(handle):
    return (isinstance(handle, ProofHandle) and
            isinstance(handle.uri, str) and bool(handle.uri) and
            isinstance(handle.hash_id_node, str) and bool(handle.hash_id_node))


def map_submit_hashes_resp_to_proof_handles(resp_list):
    """Map the responses of Nodes a batch of hashes was submitted to into handles

    Each response must have had meta.submitted_to set to the Node it came
    from. The handles of one hash share a group_id across Nodes.
    """
    check_list_arg(resp_list, 'resp_list')

    group_ids = [str(uuid.uuid1()) for h in resp_list[0].get('hashes', [])]

    proof_handles = []
    for resp in resp_list:
        for i, hash_resp in enumerate(resp.get('hashes', [])):
            proof_handles.append(ProofHandle(resp['meta']['submitted_to'],
                                             hash_resp['hash_id_node'],
                                             hash=hash_resp['hash'],
                                             group_id=group_ids[i] if i < len(group_ids) else None))

    return proof_handles
