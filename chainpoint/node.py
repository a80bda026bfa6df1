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

import httpx

from chainpoint.config import DEFAULT_TIMEOUT

JSON_HEADERS = {'Accept': 'application/json',
                'Content-Type': 'application/json'}


def get_sanitised_resp_msg(resp):
    """Get the sanitised message from a Node response

    Returns the first 160 characters of the body, with any character not in
    the whitelist replaced by '_'
    """

    # New lines are not allowed, so a message can't pretend to be a second
    # log line.
    WHITELIST = 'ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789#-.,:;"{} '

    return ''.join(c if c in WHITELIST else '_' for c in resp.text[0:160])


class RemoteNode:
    """Remote Chainpoint Node interface"""

    def __init__(self, url, client, timeout=DEFAULT_TIMEOUT):
        if not isinstance(url, str):
            raise TypeError("URL must be a string")
        self.url = url.rstrip('/')
        self.client = client
        self.timeout = timeout

    def __repr__(self):
        return 'RemoteNode(%r)' % self.url

    async def submit_hashes(self, hashes):
        """Submit hex hashes to the Node

        Returns the parsed response, with meta.submitted_to set to this Node.
        """
        resp = await self.client.post(self.url + '/hashes', json={'hashes': hashes},
                                      headers=JSON_HEADERS, timeout=self.timeout)
        resp.raise_for_status()

        body = resp.json()
        body.setdefault('meta', {})['submitted_to'] = self.url
        return body

    async def get_proofs(self, hash_ids):
        """Get the proofs for a list of hash_id_node's

        Returns a list of proof response objects.
        """
        headers = dict(JSON_HEADERS, hashids=','.join(hash_ids))
        resp = await self.client.get(self.url + '/proofs', headers=headers, timeout=self.timeout)
        resp.raise_for_status()

        body = resp.json()
        if not isinstance(body, list):
            raise ValueError("Unexpected proofs response from %s: %s" % (self.url, get_sanitised_resp_msg(resp)))
        return body

    async def get_anchor_value(self, uri):
        """Get the authoritative value an anchor uri resolves to

        Returns None if the Node doesn't answer in time or answers with an
        error; a missing value is a verification failure for that anchor, not
        for the batch.
        """
        try:
            resp = await self.client.get(uri, headers=JSON_HEADERS, timeout=self.timeout)
        except httpx.TimeoutException:
            logging.warning("Timed out getting %s" % uri)
            return None

        if resp.is_error:
            logging.warning("Got %d from %s: %s" % (resp.status_code, uri, get_sanitised_resp_msg(resp)))
            return None

        try:
            value = resp.json()
        except ValueError:
            value = resp.text.strip()

        if isinstance(value, list):
            value = value[0] if value else None

        if value is not None and not isinstance(value, str):
            logging.warning("Unexpected value from %s: %r" % (uri, value))
            return None

        return value
