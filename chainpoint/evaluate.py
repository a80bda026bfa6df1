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

from chainpoint.proofs import normalize_proofs, parse_proofs, flatten_proofs, flatten_btc_branches


def evaluate_proofs(proofs):
    """Evaluate the expected anchor values of a list of proofs

    No network access. Returns one FlatProofAnchor per anchor.
    """
    normalized_proofs = normalize_proofs(proofs)
    parsed_proofs = parse_proofs(normalized_proofs)
    return flatten_proofs(parsed_proofs)


def get_proof_txs(proofs):
    """Extract the Bitcoin anchor transaction of each proof"""
    normalized_proofs = normalize_proofs(proofs)
    parsed_proofs = parse_proofs(normalized_proofs)
    return flatten_btc_branches(parsed_proofs)
