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

"""Errors raised by the Chainpoint client

Transport failures are not wrapped; they reach the caller as the httpx
exceptions they started out as.
"""

class ChainpointError(Exception):
    """Base class for all Chainpoint client errors"""

class InvalidArgument(ChainpointError, ValueError):
    """An argument has the wrong shape, arity or is empty

    Always raised before any network I/O is attempted.
    """

class InvalidFormat(InvalidArgument):
    """An element of a proofs argument isn't a recognizable proof

    The index of the offending element is available as the index attribute.
    """
    def __init__(self, msg, index=None):
        super().__init__(msg)
        self.index = index

class InvalidUri(InvalidArgument):
    """A caller-supplied Node or Core URI failed validation"""

class UnknownProofFormat(ChainpointError):
    """Proof is in none of the object, JSON-LD or binary forms"""

class MalformedProof(ChainpointError):
    """Proof was recognized but its contents are invalid"""

class NoHashesFound(ChainpointError):
    """No usable value came back from any trusted lookup"""

class NoEndpointsAvailable(ChainpointError):
    """Discovery couldn't find a responsive Core or Node"""
