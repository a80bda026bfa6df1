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

"""Proof documents shared by the tests, with their values worked out by hand"""

import binascii
import copy
import hashlib

HASH = 'ffff27222fe366d0b8988b7312c6ba60ee422418d92b62cdcb71fe2991ee7391'
HASH_ID_NODE = '66a34bd0-f4e7-11e7-a52b-016a36a9d789'
HASH_ID_CORE = '66bd6380-f4e7-11e7-895d-0176dc2220aa'

NODE_URI = 'http://35.231.1.2'
CAL_URI = 'http://35.231.1.2/calendar/1183/hash'
BTC_URI = 'http://35.231.1.2/calendar/1184/data'

MERKLE_SIBLING = 'aa' * 32
BLOCK_SIBLING = 'bb' * 32

# A one input, one OP_RETURN output transaction committing to the calendar
# root; the root goes between the prefix and the suffix.
TX_PREFIX = ('01000000' + '01' + 'cc' * 32 + '00000000' + '00' + 'ffffffff' +
             '01' + '0000000000000000' + '22' + '6a20')
TX_SUFFIX = '00000000'


def sha256(msg):
    return hashlib.sha256(msg).digest()

def sha256x2(msg):
    return sha256(sha256(msg))

def x(h):
    return binascii.unhexlify(h)

def b2x(b):
    return binascii.hexlify(b).decode('utf8')


CAL_ROOT = sha256(x(MERKLE_SIBLING) +
                  sha256(b'core_id:' + HASH_ID_CORE.encode('utf8') +
                         sha256(b'node_id:' + HASH_ID_NODE.encode('utf8') + x(HASH))))
CAL_EXPECTED_VALUE = b2x(CAL_ROOT)

RAW_TX = TX_PREFIX + CAL_EXPECTED_VALUE + TX_SUFFIX
TXID = b2x(sha256x2(x(RAW_TX))[::-1])

BTC_MERKLE_ROOT = sha256x2(x(BLOCK_SIBLING) + sha256x2(x(RAW_TX)))
BTC_EXPECTED_VALUE = b2x(BTC_MERKLE_ROOT[::-1])

BTC_ANCHOR_ID = '503000'


PROOF_DOC = {
    '@context': 'https://w3id.org/chainpoint/v3',
    'type': 'Chainpoint',
    'hash': HASH,
    'hash_id_node': HASH_ID_NODE,
    'hash_submitted_node_at': '2018-01-09T02:47:15Z',
    'hash_id_core': HASH_ID_CORE,
    'hash_submitted_core_at': '2018-01-09T02:47:16Z',
    'branches': [
        {'label': 'cal_anchor_branch',
         'ops': [{'l': 'node_id:' + HASH_ID_NODE},
                 {'op': 'sha-256'},
                 {'l': 'core_id:' + HASH_ID_CORE},
                 {'op': 'sha-256'},
                 {'l': MERKLE_SIBLING},
                 {'op': 'sha-256'},
                 {'anchors': [{'type': 'cal',
                               'anchor_id': '1183',
                               'uris': [CAL_URI]}]}],
         'branches': [
             {'label': 'btc_anchor_branch',
              'ops': [{'l': TX_PREFIX},
                      {'r': TX_SUFFIX},
                      {'op': 'sha-256-x2'},
                      {'l': BLOCK_SIBLING},
                      {'op': 'sha-256-x2'},
                      {'anchors': [{'type': 'btc',
                                    'anchor_id': BTC_ANCHOR_ID,
                                    'uris': [BTC_URI]}]}]}]}]}


CAL_ONLY_PROOF_DOC = {
    '@context': 'https://w3id.org/chainpoint/v3',
    'type': 'Chainpoint',
    'hash': HASH,
    'hash_id_node': HASH_ID_NODE,
    'hash_submitted_node_at': '2018-01-09T02:47:15Z',
    'hash_id_core': HASH_ID_CORE,
    'hash_submitted_core_at': '2018-01-09T02:47:16Z',
    'branches': copy.deepcopy(PROOF_DOC['branches'])}
del CAL_ONLY_PROOF_DOC['branches'][0]['branches']


def proof_doc(**changes):
    """A fresh copy of PROOF_DOC, with some top-level fields changed"""
    doc = copy.deepcopy(PROOF_DOC)
    doc.update(changes)
    return doc
