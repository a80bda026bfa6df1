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

"""Proof-critical code

Everything under chainpoint.core determines the expected values a proof
evaluates to, and therefore whether it verifies at all. A change here that
alters the result for an existing proof silently turns good proofs into bad
ones, so pay extra attention when making changes.
"""
